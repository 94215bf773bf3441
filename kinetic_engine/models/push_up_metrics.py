# push_up_metrics.py
"""
Push-up metrics from the elbow-angle trajectory.
Reps are debounced elbow-angle minima; form quality is the share of reps that
reach full depth; range of motion is the mean peak-to-trough elbow swing.
"""

from typing import Optional

import numpy as np

from kinetic_engine.config import Config, config
from kinetic_engine.models.rep_detection import (
    combined_angle_series,
    find_rep_minima,
    frame_timestamps,
    rep_swings,
)
from kinetic_engine.models.schemas import KineticBlueprint, PushUpMetrics, TechniqueLabel
from kinetic_engine.utils.logging_utils import logger

ELBOWS = ("left_elbow", "right_elbow")

REP_WEIGHT = 2.5
FORM_WEIGHT = 30.0
ROM_WEIGHT = 20.0
FULL_SWING_DEG = 90.0  # Swing of a straight-arm to right-angle rep


def _technique(form_quality: float) -> TechniqueLabel:
    if form_quality >= 0.9:
        return TechniqueLabel.EXCELLENT
    if form_quality >= 0.6:
        return TechniqueLabel.GOOD
    return TechniqueLabel.NEEDS_IMPROVEMENT


def extract_push_up(blueprint: KineticBlueprint, cfg: Optional[Config] = None) -> PushUpMetrics:
    cfg = cfg or config
    series = combined_angle_series(blueprint, ELBOWS)
    if len(series) < 3:
        logger.warning("Push-up: elbow angle unavailable, result undetermined")
        return PushUpMetrics()

    timestamps = frame_timestamps(blueprint)
    angles = [angle for _, angle in series]
    times = [timestamps[frame] for frame, _ in series]
    minima = find_rep_minima(angles, times, cfg.pushup_rep_angle, cfg.rep_cooldown, cfg.pushup_up_angle)
    if not minima:
        logger.warning("Push-up: no rep reached the rep angle, result undetermined")
        return PushUpMetrics()

    full_depth = [angles[i] < cfg.pushup_full_depth_angle for i in minima]
    form_quality = float(np.mean(full_depth))
    range_of_motion = float(np.mean(rep_swings(angles, minima)))
    rep_count = len(minima)

    score = (
        rep_count * REP_WEIGHT
        + form_quality * FORM_WEIGHT
        + min(range_of_motion / FULL_SWING_DEG, 1.0) * ROM_WEIGHT
    )

    logger.info(f"Push-up: {rep_count} reps, form {form_quality:.2f}, ROM {range_of_motion:.1f}°")
    return PushUpMetrics(
        repCount=rep_count,
        formQuality=form_quality,
        rangeOfMotion=range_of_motion,
        score=min(100.0, score),
        technique=_technique(form_quality),
    )
