"""
Composite scoring and cheat detection.
Every check can be switched off in the config; thresholds live there too.
Only the replay check touches outside state, and only to read it.
"""

from typing import Optional, Sequence

import numpy as np

from kinetic_engine.config import Config, config
from kinetic_engine.models.schemas import (
    AnomalyFlag,
    AnomalyReport,
    PushUpMetrics,
    SprintMetrics,
    SquatMetrics,
    TestMetrics,
    VerticalJumpMetrics,
)
from kinetic_engine.services.signature_index import SignatureIndex
from kinetic_engine.utils.logging_utils import logger


def mean_confidence(confidences: Sequence[float]) -> float:
    if len(confidences) == 0:
        return 0.0
    return float(np.mean(confidences))


def confidence_bonus(mean_conf: float, cfg: Optional[Config] = None) -> float:
    """Bonus growing linearly with detector confidence, capped"""
    cfg = cfg or config
    return min(cfg.confidence_bonus_cap, max(0.0, mean_conf) * cfg.confidence_bonus_scale)


def composite_score(
    metrics: TestMetrics,
    mean_conf: float,
    cheat_detected: bool,
    cfg: Optional[Config] = None,
) -> float:
    """Test score plus confidence bonus, minus the cheat penalty, clamped to [0, 100]"""
    cfg = cfg or config
    penalty = cfg.cheat_penalty if cheat_detected else 0.0
    score = metrics.score + confidence_bonus(mean_conf, cfg) + penalty
    return float(np.clip(score, 0.0, 100.0))


def duration_tolerance(declared_duration: float, cfg: Optional[Config] = None) -> float:
    cfg = cfg or config
    return max(cfg.duration_tolerance_seconds, cfg.duration_tolerance_ratio * declared_duration)


def is_implausible(metrics: TestMetrics, span: float, cfg: Optional[Config] = None) -> bool:
    """True when a metric is outside what a human can physically produce"""
    cfg = cfg or config
    if isinstance(metrics, VerticalJumpMetrics):
        return metrics.jumpHeight > cfg.max_jump_height_cm
    if isinstance(metrics, SprintMetrics):
        return metrics.runTime > 0 and metrics.distance / metrics.runTime > cfg.max_sprint_speed
    if isinstance(metrics, (SquatMetrics, PushUpMetrics)):
        return span > 0 and metrics.repCount / span > cfg.max_reps_per_second
    return False


def detect_anomalies(
    metrics: TestMetrics,
    signature: str,
    confidences: Sequence[float],
    declared_duration: float,
    span: float,
    signature_index: Optional[SignatureIndex] = None,
    cfg: Optional[Config] = None,
    assessment_id: Optional[str] = None,
) -> AnomalyReport:
    """
    Run every enabled check and collect the flags that fire.
    `span` is the observed duration of the normalized sequence. A signature
    already owned by `assessment_id` itself is not a replay.
    """
    cfg = cfg or config
    flags = []
    mean_conf = mean_confidence(confidences)
    delta = abs(span - declared_duration)

    if cfg.check_low_confidence and mean_conf < cfg.min_mean_confidence:
        flags.append(AnomalyFlag.LOW_CONFIDENCE)

    if cfg.check_plausibility and is_implausible(metrics, span, cfg):
        flags.append(AnomalyFlag.IMPLAUSIBLE_METRIC)

    if cfg.check_replay and signature_index is not None and signature_index.has_seen_signature(signature, assessment_id):
        flags.append(AnomalyFlag.REPLAY_DETECTED)

    if cfg.check_duration and delta > duration_tolerance(declared_duration, cfg):
        flags.append(AnomalyFlag.DURATION_MISMATCH)

    if flags:
        logger.warning(f"Anomalies detected: {[flag.value for flag in flags]}")
    else:
        logger.info(f"No anomalies (mean confidence {mean_conf:.2f}, duration delta {delta:.2f}s)")

    return AnomalyReport(flags=flags, meanConfidence=mean_conf, durationDeltaSeconds=delta)
