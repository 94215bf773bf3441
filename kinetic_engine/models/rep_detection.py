# rep_detection.py
"""
Angle-series helpers shared by the metric extractors: combining left/right
trajectories, debounced rep minima and per-rep swings.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from kinetic_engine.models.schemas import KineticBlueprint


def combined_angle_series(blueprint: KineticBlueprint, joints: Sequence[str]) -> List[Tuple[int, float]]:
    """
    Merge the sparse trajectories of `joints` into one (frame, angle) series.
    Frames where several sides are available use their mean.
    """
    by_frame: Dict[int, List[float]] = {}
    for joint in joints:
        for sample in blueprint.jointAngles.get(joint, []):
            by_frame.setdefault(sample.frame, []).append(sample.angle)
    return [(frame, float(np.mean(values))) for frame, values in sorted(by_frame.items())]


def frame_timestamps(blueprint: KineticBlueprint) -> Dict[int, float]:
    return {sample.frame: sample.timestamp for sample in blueprint.movementPattern}


def find_rep_minima(
    angles: Sequence[float],
    times: Sequence[float],
    threshold: float,
    min_rep_duration: float,
    rise_threshold: Optional[float] = None,
) -> List[int]:
    """
    Indices of interior local minima below `threshold`.
    A minimum closer than `min_rep_duration` seconds to the previously accepted
    one belongs to the same rep; the deeper of the two is kept. With
    `rise_threshold` set, the angle must also climb above it between two
    reps, otherwise a new minimum still belongs to the previous rep.
    """
    accepted: List[int] = []
    risen = True
    for i in range(1, len(angles) - 1):
        if rise_threshold is not None and angles[i] > rise_threshold:
            risen = True
        if not (angles[i] < angles[i - 1] and angles[i] <= angles[i + 1]):
            continue
        if angles[i] >= threshold:
            continue

        if accepted and (not risen or times[i] - times[accepted[-1]] < min_rep_duration):
            if angles[i] < angles[accepted[-1]]:
                accepted[-1] = i
            risen = rise_threshold is None
            continue
        accepted.append(i)
        risen = rise_threshold is None
    return accepted


def rep_swings(angles: Sequence[float], minima: Sequence[int]) -> List[float]:
    """Peak-to-trough swing of each rep, peak taken since the previous rep's trough"""
    swings = []
    start = 0
    for idx in minima:
        peak = max(angles[start:idx + 1])
        swings.append(float(peak - angles[idx]))
        start = idx
    return swings
