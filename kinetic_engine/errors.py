"""
Exceptions raised by the assessment pipeline.
InvalidSequence and InsufficientPoseData reject a recording; the caller should
ask the athlete to record again. InvalidProofInput is a caller bug.
"""


class KineticEngineError(Exception):
    """Base class for all engine errors"""


class InvalidSequence(KineticEngineError):
    """Malformed, unordered or truncated pose sequence"""


class InsufficientPoseData(KineticEngineError):
    """Pose detector signal too weak throughout the recording"""


class InvalidProofInput(KineticEngineError):
    """Missing identity fields when building or verifying a proof record"""
