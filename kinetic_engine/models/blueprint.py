# blueprint.py
"""
Kinetic blueprint generation.
Turns a normalized pose sequence into sparse joint-angle trajectories, a
per-frame movement trace and a content-addressed signature of the movement.
"""

import hashlib
from collections import OrderedDict
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from kinetic_engine.config import Config, config
from kinetic_engine.errors import InsufficientPoseData
from kinetic_engine.models.schemas import (
    JOINT_NAMES,
    AngleSample,
    KineticBlueprint,
    Keypoint,
    MovementSample,
    PoseFrame,
    PositionSample,
)
from kinetic_engine.utils.logging_utils import logger

# Marks the virtual ground point one unit ahead of the vertex
GROUND = "ground"

# Angle joints in canonical signature order: (first point, vertex, second point)
ANGLE_JOINTS = OrderedDict([
    ("left_elbow", ("left_wrist", "left_elbow", "left_shoulder")),
    ("right_elbow", ("right_wrist", "right_elbow", "right_shoulder")),
    ("left_shoulder", ("left_elbow", "left_shoulder", "left_hip")),
    ("right_shoulder", ("right_elbow", "right_shoulder", "right_hip")),
    ("left_hip", ("left_shoulder", "left_hip", "left_knee")),
    ("right_hip", ("right_shoulder", "right_hip", "right_knee")),
    ("left_knee", ("left_ankle", "left_knee", "left_hip")),
    ("right_knee", ("right_ankle", "right_knee", "right_hip")),
    ("left_ankle", ("left_knee", "left_ankle", GROUND)),
    ("right_ankle", ("right_knee", "right_ankle", GROUND)),
])


def calculate_angle(a, b, c) -> Optional[float]:
    """
    Calculate angle between three points using vector dot product.
    Returns angle in degrees between vectors ba and bc, or None when either
    segment has zero length.
    """
    v1 = np.asarray(a[:2], dtype=float) - np.asarray(b[:2], dtype=float)
    v2 = np.asarray(c[:2], dtype=float) - np.asarray(b[:2], dtype=float)

    norm1 = np.linalg.norm(v1)
    norm2 = np.linalg.norm(v2)

    if norm1 < 1e-6 or norm2 < 1e-6:
        return None

    cosine = np.dot(v1, v2) / (norm1 * norm2)
    return float(np.degrees(np.arccos(np.clip(cosine, -1.0, 1.0))))


def joint_angle(keypoints: Mapping[str, Keypoint], joint: str) -> Optional[float]:
    """Angle at `joint` for one frame, None if any of its three points is missing"""
    first, vertex, second = ANGLE_JOINTS[joint]
    if first not in keypoints or vertex not in keypoints:
        return None

    b = keypoints[vertex]
    if second == GROUND:
        c = (b.x + 1.0, b.y)
    elif second in keypoints:
        c = (keypoints[second].x, keypoints[second].y)
    else:
        return None

    a = keypoints[first]
    return calculate_angle((a.x, a.y), (b.x, b.y), c)


def compute_signature(joint_angles: Mapping[str, Sequence[AngleSample]]) -> str:
    """
    SHA-256 over the quantized mean and range of every angle joint, taken in
    canonical joint order. Identical movement gives an identical signature.
    """
    parts = []
    for joint in ANGLE_JOINTS:
        samples = joint_angles.get(joint) or []
        if samples:
            values = np.array([s.angle for s in samples], dtype=float)
            parts.append(f"{joint}:{values.mean():.1f}:{np.ptp(values):.1f}")
        else:
            parts.append(f"{joint}:-")
    return hashlib.sha256(";".join(parts).encode("utf-8")).hexdigest()


def _centroid(frame: PoseFrame) -> Optional[np.ndarray]:
    if not frame.keypoints:
        return None
    points = np.array([[kp.x, kp.y] for kp in frame.keypoints.values()], dtype=float)
    return points.mean(axis=0)


def _stability(prev: PoseFrame, cur: PoseFrame, gain: float) -> float:
    # Higher frame-to-frame confidence variance means lower stability
    shared = sorted(set(prev.keypoints) & set(cur.keypoints))
    if not shared:
        return 0.0
    deltas = np.array(
        [cur.keypoints[name].confidence - prev.keypoints[name].confidence for name in shared]
    )
    return float(1.0 / (1.0 + gain * np.var(deltas)))


def movement_pattern(frames: List[PoseFrame], cfg: Optional[Config] = None) -> List[MovementSample]:
    """Per-frame centroid velocity, acceleration and stability"""
    cfg = cfg or config
    samples = []
    last_centroid = None
    last_centroid_time = 0.0
    prev_velocity = 0.0

    for i, frame in enumerate(frames):
        centroid = _centroid(frame)
        t = frame.timestampSeconds

        if i == 0:
            velocity, acceleration, stability = 0.0, 0.0, 1.0
        else:
            velocity = 0.0
            if centroid is not None and last_centroid is not None and t > last_centroid_time:
                velocity = float(np.linalg.norm(centroid - last_centroid) / (t - last_centroid_time))
            dt = t - frames[i - 1].timestampSeconds
            acceleration = (velocity - prev_velocity) / dt if dt > 0 else 0.0
            stability = _stability(frames[i - 1], frame, cfg.stability_gain)

        samples.append(MovementSample(
            frame=frame.frameIndex,
            timestamp=t,
            velocity=velocity,
            acceleration=acceleration,
            stability=stability,
            centroidX=None if centroid is None else float(centroid[0]),
            centroidY=None if centroid is None else float(centroid[1]),
        ))

        if centroid is not None:
            last_centroid, last_centroid_time = centroid, t
        prev_velocity = velocity

    return samples


def generate_blueprint(frames: List[PoseFrame], cfg: Optional[Config] = None) -> KineticBlueprint:
    """
    Build the kinetic blueprint of a normalized sequence.
    Raises InsufficientPoseData when too few frames yield any joint angle.
    """
    cfg = cfg or config
    joint_angles: Dict[str, List[AngleSample]] = {joint: [] for joint in ANGLE_JOINTS}
    joint_positions: Dict[str, List[PositionSample]] = {name: [] for name in JOINT_NAMES}
    frames_with_angle = 0

    for frame in frames:
        found = False
        for joint in ANGLE_JOINTS:
            angle = joint_angle(frame.keypoints, joint)
            if angle is not None:
                joint_angles[joint].append(AngleSample(frame=frame.frameIndex, angle=angle))
                found = True
        if found:
            frames_with_angle += 1

        for name, kp in frame.keypoints.items():
            joint_positions[name].append(PositionSample(frame=frame.frameIndex, x=kp.x, y=kp.y))

    coverage = frames_with_angle / len(frames) if frames else 0.0
    if coverage < cfg.min_angle_frame_ratio:
        logger.warning(f"Joint angles computable in only {coverage:.0%} of frames")
        raise InsufficientPoseData(
            f"joint angles computable in {frames_with_angle} of {len(frames)} frames"
        )

    signature = compute_signature(joint_angles)
    logger.info(f"Blueprint generated: {len(frames)} frames, angle coverage {coverage:.0%}, signature {signature[:12]}")

    return KineticBlueprint(
        jointAngles=joint_angles,
        movementPattern=movement_pattern(frames, cfg),
        jointPositions=joint_positions,
        signature=signature,
    )
