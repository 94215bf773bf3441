"""
Assessment engine: runs one recording through normalization, blueprinting,
metric extraction, anomaly detection and proof building, and returns the
frozen Assessment. Collaborators (signature index, previous-hash lookup) are
injected; the engine keeps no state of its own between calls.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from kinetic_engine.config import Config, config
from kinetic_engine.models.blueprint import generate_blueprint
from kinetic_engine.models.metric_extractors import extract_metrics, rep_count
from kinetic_engine.models.normalizer import frame_confidences, normalize_sequence, sequence_span
from kinetic_engine.models.schemas import AIAnalysis, AnomalyFlag, AnomalyReport, Assessment, RecordingInput
from kinetic_engine.services.anomaly_service import composite_score, detect_anomalies
from kinetic_engine.services.assessment_store import PreviousHashLookup
from kinetic_engine.services.proof_chain import build_proof, proof_payload
from kinetic_engine.services.signature_index import SignatureIndex
from kinetic_engine.utils.feedback import attach_ranking
from kinetic_engine.utils.logging_utils import logger


class AssessmentEngine:
    """
    Entry point for analysing submitted recordings.
    Safe to share between threads as long as the injected collaborators are.
    """

    def __init__(
        self,
        signature_index: Optional[SignatureIndex],
        hash_lookup: Optional[PreviousHashLookup] = None,
        cfg: Optional[Config] = None,
    ):
        self.signature_index = signature_index
        self.hash_lookup = hash_lookup
        self.cfg = cfg or config
        logger.info(f"AssessmentEngine initialized with checks: {self.cfg.enabled_checks}")

    def assess(
        self,
        recording: RecordingInput,
        athlete_id: str,
        assessment_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        previous_hash: Optional[str] = None,
    ) -> Assessment:
        """
        Analyse one recording and return its assessment.
        Raises InvalidSequence or InsufficientPoseData when the recording
        cannot be analysed.
        """
        assessment, _ = self.assess_with_report(
            recording, athlete_id, assessment_id, created_at, previous_hash
        )
        return assessment

    def assess_with_report(
        self,
        recording: RecordingInput,
        athlete_id: str,
        assessment_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        previous_hash: Optional[str] = None,
    ) -> Tuple[Assessment, AnomalyReport]:
        """Same as assess(), also returning the anomaly report behind the verdict"""
        cfg = self.cfg
        if recording.distanceMeters is not None:
            cfg = cfg.copy_with(sprint_distance_m=recording.distanceMeters)

        assessment_id = assessment_id or uuid.uuid4().hex
        created_at = created_at or datetime.now(timezone.utc)
        # Reject bad identity fields before anything is registered in the index
        proof_payload(assessment_id, athlete_id, recording.testType, created_at)

        logger.info(f"Assessing {recording.testType.value} recording {assessment_id} for athlete {athlete_id}")

        frames = normalize_sequence(recording, cfg)
        blueprint = generate_blueprint(frames, cfg)
        metrics = extract_metrics(recording.testType, blueprint, cfg)

        report = detect_anomalies(
            metrics,
            blueprint.signature,
            frame_confidences(recording.frames),
            recording.declaredDurationSeconds,
            sequence_span(frames),
            self.signature_index,
            cfg,
            assessment_id,
        )

        if not report.cheat_detected and self.signature_index is not None:
            claimed = self.signature_index.record_signature(blueprint.signature, assessment_id)
            if not claimed and cfg.check_replay:
                # Lost the race against a concurrent submission of the same clip
                logger.warning(f"Assessment {assessment_id}: signature claimed concurrently, flagging replay")
                report = report.model_copy(update={"flags": report.flags + [AnomalyFlag.REPLAY_DETECTED]})

        cheat_detected = report.cheat_detected
        score = composite_score(metrics, report.meanConfidence, cheat_detected, cfg)

        if previous_hash is None and self.hash_lookup is not None:
            previous_hash = self.hash_lookup.get_previous_hash(athlete_id)
        proof = build_proof(assessment_id, athlete_id, recording.testType, created_at, previous_hash)

        assessment = Assessment(
            id=assessment_id,
            athleteId=athlete_id,
            testType=recording.testType,
            timestamp=created_at,
            aiAnalysis=AIAnalysis(
                posePoints=[frame.keypoints for frame in frames],
                repCount=rep_count(metrics),
                biomechanicalScore=score,
                cheatDetected=cheat_detected,
                confidenceScore=report.meanConfidence,
                anomalies=report.flags,
            ),
            kineticBlueprint=blueprint,
            performanceMetrics=metrics,
            proofChain=proof,
        )

        logger.info(f"Assessment {assessment_id}: score {score:.1f}, cheat detected: {cheat_detected}")
        return attach_ranking(assessment), report
