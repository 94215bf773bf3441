# sprint_metrics.py
"""
Sprint metrics from centroid speed and ankle oscillation.
Run time spans the sustained high-speed part of the recording; cadence and
stride length come from the period of the shin-angle oscillation.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from kinetic_engine.config import Config, config
from kinetic_engine.models.schemas import KineticBlueprint, SprintMetrics, TechniqueLabel
from kinetic_engine.utils.logging_utils import logger

ANKLES = ("left_ankle", "right_ankle")

REFERENCE_DISTANCE_M = 100.0
PAR_TIME_100M = 12.0
SECONDS_PENALTY = 5.0


def sustained_runs(flags: Sequence[bool], min_length: int) -> List[Tuple[int, int]]:
    """(start, end) index pairs, inclusive, of True stretches at least `min_length` long"""
    runs = []
    start = None
    for i, flag in enumerate(list(flags) + [False]):
        if flag and start is None:
            start = i
        elif not flag and start is not None:
            if i - start >= min_length:
                runs.append((start, i - 1))
            start = None
    return runs


def oscillation_period(times: Sequence[float], values: Sequence[float], min_range: float) -> Optional[float]:
    """
    Mean time between upward crossings of the series mean.
    None when the swing is smaller than `min_range` or fewer than two
    crossings exist.
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 3 or np.ptp(values) < min_range:
        return None

    centered = values - values.mean()
    crossings = []
    for i in range(1, len(centered)):
        if centered[i - 1] < 0 <= centered[i]:
            frac = -centered[i - 1] / (centered[i] - centered[i - 1])
            crossings.append(times[i - 1] + frac * (times[i] - times[i - 1]))

    if len(crossings) < 2:
        return None
    return float(np.mean(np.diff(crossings)))


def _ankle_series(blueprint: KineticBlueprint, frames: set) -> Tuple[List[float], List[float]]:
    # Left and right swing in antiphase, so one side is used rather than their mean
    timestamps = {s.frame: s.timestamp for s in blueprint.movementPattern}
    best: Tuple[List[float], List[float]] = ([], [])
    for ankle in ANKLES:
        samples = [s for s in blueprint.jointAngles.get(ankle, []) if s.frame in frames]
        if len(samples) > len(best[0]):
            best = ([timestamps[s.frame] for s in samples], [s.angle for s in samples])
    return best


def _technique(time_100m: float) -> TechniqueLabel:
    if time_100m < 13:
        return TechniqueLabel.ELITE
    if time_100m < 14:
        return TechniqueLabel.ADVANCED
    if time_100m < 16:
        return TechniqueLabel.GOOD
    return TechniqueLabel.DEVELOPING


def extract_sprint(blueprint: KineticBlueprint, cfg: Optional[Config] = None) -> SprintMetrics:
    cfg = cfg or config
    distance = cfg.sprint_distance_m
    trace = blueprint.movementPattern

    fast = [s.velocity >= cfg.sprint_velocity_threshold for s in trace]
    runs = sustained_runs(fast, cfg.min_consecutive_frames)
    if not runs:
        logger.warning("Sprint: no sustained running detected, result undetermined")
        return SprintMetrics(distance=distance)

    first, last = runs[0][0], runs[-1][1]
    # Motion starts at the frame before the first fast sample
    start_time = trace[first - 1].timestamp if first > 0 else trace[first].timestamp
    run_time = trace[last].timestamp - start_time
    if run_time <= 0:
        logger.warning("Sprint: zero-length run, result undetermined")
        return SprintMetrics(distance=distance)

    window = trace[first:last + 1]
    mean_velocity = float(np.mean([s.velocity for s in window]))
    times, angles = _ankle_series(blueprint, {s.frame for s in window})
    period = oscillation_period(times, angles, cfg.min_movement_range)

    cadence = 0.0
    stride_length = 0.0
    if period:
        step_period = period / 2.0  # One ankle cycle covers two steps
        cadence = 60.0 / step_period
        stride_length = mean_velocity * step_period
    else:
        logger.warning("Sprint: ankle oscillation not periodic, cadence unavailable")

    time_100m = run_time * REFERENCE_DISTANCE_M / distance
    score = float(np.clip(100.0 - (time_100m - PAR_TIME_100M) * SECONDS_PENALTY, 0.0, 100.0))

    logger.info(f"Sprint: {run_time:.2f}s over {distance:.0f} m, cadence {cadence:.0f} spm, stride {stride_length:.2f}")
    return SprintMetrics(
        runTime=run_time,
        strideLength=stride_length,
        cadence=cadence,
        distance=distance,
        score=score,
        technique=_technique(time_100m),
    )
