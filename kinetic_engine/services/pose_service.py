"""
Bridge from a pose detector to the engine's input records.
Detectors such as YOLOv8-pose return one (17, 3) array of [x, y, confidence]
rows per person in COCO joint order; these helpers turn them into PoseFrames.
"""

from typing import Any, Callable, Iterable, Optional, Sequence, Union

import numpy as np

from kinetic_engine.models.schemas import JOINT_NAMES, Keypoint, PoseFrame, RecordingInput, TestType
from kinetic_engine.utils.logging_utils import logger

# detectPose(frame) -> (17, 3) keypoint array, or None when nobody is in frame
PoseDetector = Callable[[Any], Optional[np.ndarray]]


def frame_from_keypoints(keypoints: Optional[np.ndarray], frame_index: int, timestamp: float) -> PoseFrame:
    """
    Convert one detector array into a PoseFrame.
    Rows with zero confidence or non-finite coordinates are left out.
    """
    if keypoints is None:
        return PoseFrame(frameIndex=frame_index, timestampSeconds=timestamp)

    keypoints = np.asarray(keypoints, dtype=float)
    if keypoints.shape != (len(JOINT_NAMES), 3):
        raise ValueError(f"Expected keypoint array of shape ({len(JOINT_NAMES)}, 3), got {keypoints.shape}")

    points = {}
    for name, (x, y, conf) in zip(JOINT_NAMES, keypoints):
        if conf <= 0 or not (np.isfinite(x) and np.isfinite(y)):
            continue
        points[name] = Keypoint(x=float(x), y=float(y), confidence=float(min(conf, 1.0)))

    return PoseFrame(frameIndex=frame_index, timestampSeconds=timestamp, keypoints=points)


def recording_from_keypoints(
    keypoint_arrays: Sequence[Optional[np.ndarray]],
    fps: float,
    test_type: Union[TestType, str],
    declared_duration: float,
    distance_m: Optional[float] = None,
) -> RecordingInput:
    """Build a recording from per-frame detector output sampled at `fps`"""
    if fps <= 0:
        raise ValueError("fps must be positive")

    frames = [
        frame_from_keypoints(kpts, index, index / fps)
        for index, kpts in enumerate(keypoint_arrays)
    ]
    return RecordingInput(
        testType=TestType(test_type),
        declaredDurationSeconds=declared_duration,
        frames=frames,
        distanceMeters=distance_m,
    )


class PoseService:
    """
    Runs an external pose detector over decoded video frames and collects the
    results as a recording. The detector is injected; no model is loaded here.
    """

    def __init__(self, detector: PoseDetector):
        self.detector = detector

    def extract_recording(
        self,
        images: Iterable[Any],
        fps: float,
        test_type: Union[TestType, str],
        declared_duration: float,
        distance_m: Optional[float] = None,
    ) -> RecordingInput:
        arrays = []
        missed = 0
        for image in images:
            keypoints = self.detector(image)
            if keypoints is None:
                missed += 1
            arrays.append(keypoints)

        logger.info(f"Pose detection ran on {len(arrays)} frames, no person in {missed}")
        return recording_from_keypoints(arrays, fps, test_type, declared_duration, distance_m)
