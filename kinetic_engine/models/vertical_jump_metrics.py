# vertical_jump_metrics.py
"""
Vertical jump metrics from the body-centroid trace.
The ground level is estimated from the first frames; jump height is the rise
of the centroid from ground to apex. Image y grows downward, so the apex is
the smallest centroid y.
"""

from typing import Dict, List, Optional, Tuple

import numpy as np

from kinetic_engine.config import Config, config
from kinetic_engine.models.blueprint import calculate_angle
from kinetic_engine.models.schemas import KineticBlueprint, TechniqueLabel, VerticalJumpMetrics
from kinetic_engine.utils.logging_utils import logger

# Ankle-hip-shoulder chains used for the takeoff angle
TAKEOFF_CHAINS = (
    ("left_ankle", "left_hip", "left_shoulder"),
    ("right_ankle", "right_hip", "right_shoulder"),
)

HEIGHT_CAP_CM = 70.0
TAKEOFF_WEIGHT = 20.0


def _positions_by_frame(blueprint: KineticBlueprint) -> Dict[str, Dict[int, Tuple[float, float]]]:
    return {
        joint: {s.frame: (s.x, s.y) for s in samples}
        for joint, samples in blueprint.jointPositions.items()
    }


def takeoff_angle(blueprint: KineticBlueprint, frames: List[int]) -> float:
    """
    Ankle-hip-shoulder angle at the last of `frames` where it can be computed,
    averaged over the available body sides. 0.0 if never computable.
    """
    positions = _positions_by_frame(blueprint)
    for frame in reversed(frames):
        angles = []
        for ankle, hip, shoulder in TAKEOFF_CHAINS:
            points = [positions.get(joint, {}).get(frame) for joint in (ankle, hip, shoulder)]
            if any(p is None for p in points):
                continue
            angle = calculate_angle(*points)
            if angle is not None:
                angles.append(angle)
        if angles:
            return float(np.mean(angles))
    return 0.0


def _technique(height_cm: float) -> TechniqueLabel:
    if height_cm >= 60:
        return TechniqueLabel.EXCELLENT
    if height_cm >= 40:
        return TechniqueLabel.GOOD
    return TechniqueLabel.NEEDS_IMPROVEMENT


def extract_vertical_jump(blueprint: KineticBlueprint, cfg: Optional[Config] = None) -> VerticalJumpMetrics:
    cfg = cfg or config
    trace = [s for s in blueprint.movementPattern if s.centroidY is not None]
    if len(trace) < 3:
        logger.warning("Vertical jump: centroid trace too short, result undetermined")
        return VerticalJumpMetrics()

    ys = np.array([s.centroidY for s in trace])
    ground_y = float(np.median(ys[:cfg.jump_ground_frames]))
    apex = int(np.argmin(ys))
    height_cm = (ground_y - float(ys[apex])) * cfg.height_scale_cm

    if height_cm < cfg.min_jump_height_cm:
        logger.warning(f"Vertical jump: rise of {height_cm:.1f} cm too small, result undetermined")
        return VerticalJumpMetrics()

    on_ground = np.abs(ys - ground_y) <= cfg.jump_ground_tolerance

    # Last ground frame before the apex, first ground frame after it
    takeoff = max((i for i in range(apex) if on_ground[i]), default=0)
    landing = next(
        (i for i in range(apex + 1, len(trace)) if on_ground[i]),
        min(apex + 1, len(trace) - 1),
    )

    angle = takeoff_angle(blueprint, [s.frame for s in trace[:takeoff + 1]])

    landing_start = trace[landing].timestamp
    window = [
        s.stability for s in trace[landing:]
        if s.timestamp - landing_start <= cfg.landing_window_seconds
    ]
    landing_stability = float(np.mean(window)) if window else 0.0

    # Landing stability is reported but not scored: the score must not fall
    # as detector confidence rises
    score = min(height_cm, HEIGHT_CAP_CM) + angle / 180.0 * TAKEOFF_WEIGHT

    logger.info(
        f"Vertical jump: height {height_cm:.1f} cm, takeoff {angle:.1f}°, "
        f"landing stability {landing_stability:.2f}"
    )
    return VerticalJumpMetrics(
        jumpHeight=height_cm,
        takeoffAngle=angle,
        landingStability=landing_stability,
        repCount=1,
        score=float(np.clip(score, 0.0, 100.0)),
        technique=_technique(height_cm),
    )
