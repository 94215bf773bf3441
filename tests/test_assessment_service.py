from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from kinetic_engine.config import config
from kinetic_engine.errors import InsufficientPoseData, InvalidProofInput, InvalidSequence
from kinetic_engine.models import schemas
from kinetic_engine.models.schemas import (
    AnomalyFlag,
    Keypoint,
    PoseFrame,
    RecordingInput,
    SprintMetrics,
    VerticalJumpMetrics,
)
from kinetic_engine.services.assessment_service import AssessmentEngine
from kinetic_engine.services.assessment_store import InMemoryAssessmentStore
from kinetic_engine.services.proof_chain import verify
from kinetic_engine.services.signature_index import InMemorySignatureIndex

from tests.synthetic import build_recording, jump_poses, jump_recording, sprint_poses

CREATED = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def index():
    return InMemorySignatureIndex()


@pytest.fixture
def engine(index):
    return AssessmentEngine(index)


class TestAssess:
    def test_clean_jump(self, engine, index):
        assessment = engine.assess(jump_recording(), "athlete-1")

        analysis = assessment.aiAnalysis
        assert isinstance(assessment.performanceMetrics, VerticalJumpMetrics)
        assert not analysis.cheatDetected
        assert analysis.anomalies == []
        assert analysis.repCount == 1
        assert analysis.confidenceScore == pytest.approx(0.9)
        assert 60.0 <= analysis.biomechanicalScore <= 90.0
        assert len(analysis.posePoints) == 30
        assert verify(assessment)
        assert index.owner_of(assessment.kineticBlueprint.signature) == assessment.id

    def test_ranking_follows_metric_score(self, engine):
        assessment = engine.assess(jump_recording(), "athlete-1")
        # metric score around 69 sits in the Beginner band
        assert assessment.ranking.category == "Beginner"
        assert assessment.ranking.percentile == 50

    def test_declared_duration_mismatch(self, engine, index):
        assessment = engine.assess(jump_recording(declared=30.0), "athlete-1")

        assert assessment.aiAnalysis.cheatDetected
        assert AnomalyFlag.DURATION_MISMATCH in assessment.aiAnalysis.anomalies
        clean = AssessmentEngine(InMemorySignatureIndex()).assess(jump_recording(), "athlete-1")
        assert assessment.aiAnalysis.biomechanicalScore == pytest.approx(
            clean.aiAnalysis.biomechanicalScore - 20.0
        )
        # flagged recordings do not claim their signature
        assert len(index) == 0

    def test_replayed_clip(self, engine):
        first = engine.assess(jump_recording(), "athlete-1")
        second = engine.assess(jump_recording(), "athlete-2")

        assert not first.aiAnalysis.cheatDetected
        assert second.aiAnalysis.anomalies == [AnomalyFlag.REPLAY_DETECTED]

    def test_replay_check_disabled(self):
        engine = AssessmentEngine(InMemorySignatureIndex(), cfg=config.copy_with(check_replay=False))
        engine.assess(jump_recording(), "athlete-1")
        assert not engine.assess(jump_recording(), "athlete-1").aiAnalysis.cheatDetected

    def test_without_signature_index(self):
        engine = AssessmentEngine(None)
        engine.assess(jump_recording(), "athlete-1")
        assert not engine.assess(jump_recording(), "athlete-1").aiAnalysis.cheatDetected

    def test_deterministic(self):
        results = [
            AssessmentEngine(InMemorySignatureIndex()).assess(
                jump_recording(), "athlete-1", assessment_id="as-1", created_at=CREATED
            )
            for _ in range(2)
        ]
        assert results[0].model_dump() == results[1].model_dump()

    def test_sprint_distance_from_recording(self, engine):
        recording = build_recording(schemas.TestType.SPRINT, sprint_poses(), distance=40.0)
        assessment, report = engine.assess_with_report(recording, "athlete-1")

        assert isinstance(assessment.performanceMetrics, SprintMetrics)
        assert assessment.performanceMetrics.distance == 40.0
        assert assessment.aiAnalysis.repCount == 0
        assert report.flags == []
        assert assessment.ranking.category == "Elite"

    def test_report_matches_assessment(self, engine):
        assessment, report = engine.assess_with_report(jump_recording(declared=30.0), "athlete-1")
        assert report.flags == assessment.aiAnalysis.anomalies
        assert report.durationDeltaSeconds > 20.0


class TestRejections:
    def test_empty_recording(self, engine):
        recording = RecordingInput(testType=schemas.TestType.SQUAT, declaredDurationSeconds=5.0, frames=[])
        with pytest.raises(InvalidSequence):
            engine.assess(recording, "athlete-1")

    def test_no_usable_angles(self, engine):
        frames = [
            PoseFrame(frameIndex=i, timestampSeconds=i / 30,
                      keypoints={"nose": Keypoint(x=0.5, y=0.2, confidence=0.9)})
            for i in range(30)
        ]
        recording = RecordingInput(testType=schemas.TestType.SQUAT, declaredDurationSeconds=1.0, frames=frames)
        with pytest.raises(InsufficientPoseData):
            engine.assess(recording, "athlete-1")

    def test_all_keypoints_below_floor(self, engine):
        with pytest.raises(InsufficientPoseData):
            engine.assess(jump_recording(conf=0.2), "athlete-1")

    def test_missing_athlete_id(self, engine, index):
        with pytest.raises(InvalidProofInput):
            engine.assess(jump_recording(), "")
        assert len(index) == 0


class TestProofLinking:
    def test_previous_hash_from_store(self, index):
        store = InMemoryAssessmentStore()
        engine = AssessmentEngine(index, store)

        first = engine.assess(jump_recording(), "athlete-1")
        store.save(first)
        second = engine.assess(jump_recording(declared=30.0), "athlete-1")

        assert first.proofChain.previousHash is None
        assert second.proofChain.previousHash == first.proofChain.hash

    def test_explicit_previous_hash(self, engine):
        assessment = engine.assess(jump_recording(), "athlete-1", previous_hash="e" * 64)
        assert assessment.proofChain.previousHash == "e" * 64


class TestConcurrency:
    def test_same_clip_submitted_concurrently(self, engine):
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(
                lambda i: engine.assess(jump_recording(), f"athlete-{i}"), range(8)
            ))

        clean = [a for a in results if not a.aiAnalysis.cheatDetected]
        assert len(clean) == 1
        for assessment in results:
            if assessment is not clean[0]:
                assert assessment.aiAnalysis.anomalies == [AnomalyFlag.REPLAY_DETECTED]

    def test_different_clips_do_not_interfere(self, engine):
        recordings = [jump_recording(), build_recording(schemas.TestType.SPRINT, sprint_poses(), distance=40.0)]
        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(lambda r: engine.assess(r, "athlete-1"), recordings))
        assert not any(a.aiAnalysis.cheatDetected for a in results)


def with_confidence(poses, frames, joints, conf):
    """Copy of `poses` with `joints` set to confidence `conf` in `frames`"""
    result = [dict(pose) for pose in poses]
    for i in frames:
        for joint in joints:
            result[i][joint] = result[i][joint].model_copy(update={"confidence": conf})
    return result


class TestConfidenceMonotonicity:
    def assess(self, recording):
        return AssessmentEngine(InMemorySignatureIndex()).assess(recording, "athlete-1")

    def test_sharper_landing_frames_never_lower_the_score(self):
        base = self.assess(jump_recording())
        sharper_poses = with_confidence(jump_poses(), range(20, 23), schemas.JOINT_NAMES[:8], 1.0)
        sharper = self.assess(build_recording(schemas.TestType.VERTICAL_JUMP, sharper_poses, declared=1.0))

        assert sharper.aiAnalysis.confidenceScore > base.aiAnalysis.confidenceScore
        assert sharper.aiAnalysis.biomechanicalScore >= base.aiAnalysis.biomechanicalScore
        # the uneven confidence still shows up in the reported landing stability
        assert sharper.performanceMetrics.landingStability < base.performanceMetrics.landingStability

    def test_uniform_confidence_levels(self):
        scores = [
            self.assess(jump_recording(conf=c)).aiAnalysis.biomechanicalScore
            for c in (0.6, 0.75, 0.8, 0.9, 0.95, 1.0)
        ]
        assert scores == sorted(scores)


class TestRetry:
    def test_same_assessment_id_is_not_a_replay(self, engine, index):
        first = engine.assess(jump_recording(), "athlete-1", assessment_id="as-1", created_at=CREATED)
        retry = engine.assess(jump_recording(), "athlete-1", assessment_id="as-1", created_at=CREATED)

        assert first.aiAnalysis.anomalies == []
        assert retry.aiAnalysis.anomalies == []
        assert retry.model_dump() == first.model_dump()
        assert len(index) == 1

    def test_other_assessment_id_is_still_a_replay(self, engine):
        engine.assess(jump_recording(), "athlete-1", assessment_id="as-1")
        other = engine.assess(jump_recording(), "athlete-1", assessment_id="as-2")
        assert other.aiAnalysis.anomalies == [AnomalyFlag.REPLAY_DETECTED]
