# squat_metrics.py
"""
Squat metrics from the knee-angle trajectory.
Depth comes from the deepest knee angle, reps from debounced knee-angle minima,
knee alignment from the horizontal offset between knee and ankle.
"""

from typing import Optional

import numpy as np

from kinetic_engine.config import Config, config
from kinetic_engine.models.rep_detection import combined_angle_series, find_rep_minima, frame_timestamps
from kinetic_engine.models.schemas import KineticBlueprint, SquatMetrics, TechniqueLabel
from kinetic_engine.utils.logging_utils import logger

KNEES = ("left_knee", "right_knee")
LEGS = (("left_knee", "left_ankle"), ("right_knee", "right_ankle"))

DEPTH_WEIGHT = 0.6
ALIGNMENT_WEIGHT = 40.0
REP_WEIGHT = 2.0


def knee_alignment(blueprint: KineticBlueprint) -> float:
    """
    1 minus the mean horizontal knee-over-ankle offset relative to shin length.
    Returns 1.0 when no frame has both points.
    """
    deviations = []
    for knee, ankle in LEGS:
        ankles = {s.frame: s for s in blueprint.jointPositions.get(ankle, [])}
        for k in blueprint.jointPositions.get(knee, []):
            a = ankles.get(k.frame)
            if a is None:
                continue
            shin = np.hypot(k.x - a.x, k.y - a.y)
            if shin > 1e-6:
                deviations.append(abs(k.x - a.x) / shin)

    if not deviations:
        return 1.0
    return float(np.clip(1.0 - np.mean(deviations), 0.0, 1.0))


def _technique(depth: float) -> TechniqueLabel:
    if depth >= 100:
        return TechniqueLabel.EXCELLENT
    if depth >= 80:
        return TechniqueLabel.GOOD
    return TechniqueLabel.NEEDS_IMPROVEMENT


def extract_squat(blueprint: KineticBlueprint, cfg: Optional[Config] = None) -> SquatMetrics:
    cfg = cfg or config
    series = combined_angle_series(blueprint, KNEES)
    if len(series) < 3:
        logger.warning("Squat: knee angle unavailable, result undetermined")
        return SquatMetrics()

    frames = [frame for frame, _ in series]
    angles = np.array([angle for _, angle in series])
    if np.ptp(angles) < cfg.min_movement_range:
        logger.warning(f"Squat: knee range {np.ptp(angles):.1f}° below {cfg.min_movement_range}°, result undetermined")
        return SquatMetrics()

    timestamps = frame_timestamps(blueprint)
    times = [timestamps[f] for f in frames]
    minima = find_rep_minima(angles, times, cfg.squat_rep_angle, cfg.rep_cooldown, cfg.squat_up_angle)

    depth = 180.0 - float(angles.min())
    alignment = knee_alignment(blueprint)
    rep_count = len(minima)
    score = min(100.0, depth * DEPTH_WEIGHT + alignment * ALIGNMENT_WEIGHT + rep_count * REP_WEIGHT)

    logger.info(f"Squat: {rep_count} reps, depth {depth:.1f}°, alignment {alignment:.2f}")
    return SquatMetrics(
        squatDepth=depth,
        kneeAlignment=alignment,
        repCount=rep_count,
        score=max(0.0, score),
        technique=_technique(depth),
    )
