# normalizer.py
"""
Pose sequence validation and cleaning.
Rejects unordered or truncated captures and drops low-confidence keypoints so
that later stages skip them instead of reading a point at the origin.
"""

import math
from typing import Any, Dict, List, Optional

import numpy as np
from pydantic import ValidationError

from kinetic_engine.config import Config, config
from kinetic_engine.errors import InvalidSequence
from kinetic_engine.models.schemas import PoseFrame, RecordingInput
from kinetic_engine.utils.logging_utils import logger


def load_recording(payload: Dict[str, Any]) -> RecordingInput:
    """Parse an untrusted recording payload, reporting schema problems as InvalidSequence"""
    try:
        return RecordingInput.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Rejected recording payload: {e.error_count()} validation error(s)")
        raise InvalidSequence(str(e)) from e


def sequence_span(frames: List[PoseFrame]) -> float:
    """Seconds between the first and the last frame"""
    if not frames:
        return 0.0
    return frames[-1].timestampSeconds - frames[0].timestampSeconds


def frame_confidences(frames: List[PoseFrame]) -> List[float]:
    """Mean detector confidence of each frame; frames without keypoints count as 0"""
    confidences = []
    for frame in frames:
        if frame.keypoints:
            confidences.append(float(np.mean([kp.confidence for kp in frame.keypoints.values()])))
        else:
            confidences.append(0.0)
    return confidences


def _check_ordering(frames: List[PoseFrame]):
    for prev, cur in zip(frames, frames[1:]):
        if cur.frameIndex <= prev.frameIndex:
            raise InvalidSequence(
                f"frameIndex must be strictly increasing (frame {cur.frameIndex} after {prev.frameIndex})"
            )
        if cur.timestampSeconds < prev.timestampSeconds:
            raise InvalidSequence(
                f"timestamps must not decrease (frame {cur.frameIndex} at {cur.timestampSeconds}s)"
            )


def minimum_frame_count(declared_duration: float, span: float, cfg: Config) -> int:
    """
    Frames required for a recording to be analysed.
    Uses the shorter of the declared duration and the observed span, so a
    recording much shorter than declared reaches the duration-mismatch check
    instead of being rejected here.
    """
    duration = min(declared_duration, span)
    return max(1, math.ceil(cfg.min_frame_ratio * cfg.expected_fps * duration))


def normalize_sequence(recording: RecordingInput, cfg: Optional[Config] = None) -> List[PoseFrame]:
    """
    Validate ordering and density of the recording's frames and remove
    keypoints below the confidence floor. Returns new frames; the input is not
    modified.
    """
    cfg = cfg or config
    frames = recording.frames

    if not frames:
        logger.warning("Rejected recording: no frames")
        raise InvalidSequence("pose sequence is empty")

    try:
        _check_ordering(frames)
    except InvalidSequence as e:
        logger.warning(f"Rejected recording: {e}")
        raise

    required = minimum_frame_count(recording.declaredDurationSeconds, sequence_span(frames), cfg)
    if len(frames) < required:
        logger.warning(f"Rejected recording: {len(frames)} frames, at least {required} required")
        raise InvalidSequence(
            f"too few frames for the recording duration ({len(frames)} < {required})"
        )

    normalized = []
    dropped = 0
    for frame in frames:
        kept = {
            name: kp for name, kp in frame.keypoints.items()
            if kp.confidence >= cfg.min_confidence
        }
        dropped += len(frame.keypoints) - len(kept)
        normalized.append(frame.model_copy(update={"keypoints": kept}))

    logger.info(f"Normalized {len(normalized)} frames, dropped {dropped} low-confidence keypoints")
    return normalized
