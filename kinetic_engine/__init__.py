"""Kinetic blueprinting and anti-cheat assessment engine for recorded fitness tests."""

from kinetic_engine.errors import InsufficientPoseData, InvalidProofInput, InvalidSequence, KineticEngineError
from kinetic_engine.models.schemas import Assessment, PoseFrame, RecordingInput, TestType
from kinetic_engine.services.assessment_service import AssessmentEngine
from kinetic_engine.services.proof_chain import verify, verify_chain

__all__ = [
    "AssessmentEngine",
    "Assessment",
    "PoseFrame",
    "RecordingInput",
    "TestType",
    "verify",
    "verify_chain",
    "KineticEngineError",
    "InvalidSequence",
    "InsufficientPoseData",
    "InvalidProofInput",
]
