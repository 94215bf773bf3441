# schemas.py
"""
Pydantic records flowing through the assessment pipeline.
Field names follow the camelCase JSON contract handed to the assessment store.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# 17-joint vocabulary in COCO / YOLO-pose order
JOINT_NAMES = (
    "nose", "left_eye", "right_eye", "left_ear", "right_ear",
    "left_shoulder", "right_shoulder", "left_elbow", "right_elbow",
    "left_wrist", "right_wrist", "left_hip", "right_hip",
    "left_knee", "right_knee", "left_ankle", "right_ankle",
)


class TestType(str, Enum):
    """Supported physical tests"""

    VERTICAL_JUMP = "vertical-jump"
    SQUAT = "squat"
    SPRINT = "sprint"
    PUSH_UP = "push-up"


class TechniqueLabel(str, Enum):
    """Technique classification shared by every test type"""
    UNDETERMINED = "Undetermined"
    NEEDS_IMPROVEMENT = "Needs Improvement"
    DEVELOPING = "Developing"
    GOOD = "Good"
    ADVANCED = "Advanced"
    EXCELLENT = "Excellent"
    ELITE = "Elite"


class AnomalyFlag(str, Enum):
    """Reasons a recording is flagged as suspicious"""
    LOW_CONFIDENCE = "low_confidence"
    IMPLAUSIBLE_METRIC = "implausible_metric"
    REPLAY_DETECTED = "replay_detected"
    DURATION_MISMATCH = "duration_mismatch"


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

class Keypoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)
    confidence: float = Field(ge=0.0, le=1.0)


class PoseFrame(BaseModel):
    """
    Keypoints detected in a single frame.
    Joints the detector missed are left out of the mapping entirely.
    """
    model_config = ConfigDict(frozen=True)

    frameIndex: int = Field(ge=0)
    timestampSeconds: float = Field(ge=0.0, allow_inf_nan=False)
    keypoints: Dict[str, Keypoint] = Field(default_factory=dict)

    @field_validator("keypoints")
    @classmethod
    def joints_in_vocabulary(cls, v: Dict[str, Keypoint]) -> Dict[str, Keypoint]:
        unknown = sorted(set(v) - set(JOINT_NAMES))
        if unknown:
            raise ValueError(f"unknown joint names: {unknown}")
        return v


class RecordingInput(BaseModel):
    """One submitted recording: test type, declared duration and pose sequence"""
    testType: TestType
    declaredDurationSeconds: float = Field(ge=0.0, allow_inf_nan=False)
    frames: List[PoseFrame] = Field(default_factory=list)
    distanceMeters: Optional[float] = Field(None, gt=0.0, description="Declared sprint distance")


# ---------------------------------------------------------------------------
# Kinetic blueprint
# ---------------------------------------------------------------------------

class AngleSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    frame: int
    angle: float


class PositionSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    frame: int
    x: float
    y: float


class MovementSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    frame: int
    timestamp: float
    velocity: float = 0.0
    acceleration: float = 0.0
    stability: float = 1.0
    centroidX: Optional[float] = None             # None when no keypoint survived cleaning
    centroidY: Optional[float] = None


class KineticBlueprint(BaseModel):
    model_config = ConfigDict(frozen=True)

    jointAngles: Dict[str, List[AngleSample]]
    movementPattern: List[MovementSample]
    jointPositions: Dict[str, List[PositionSample]]
    signature: str


# ---------------------------------------------------------------------------
# Test metrics (tagged by testType)
# ---------------------------------------------------------------------------

class MetricsBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(0.0, ge=0.0, le=100.0)
    technique: TechniqueLabel = TechniqueLabel.UNDETERMINED


class VerticalJumpMetrics(MetricsBase):
    testType: Literal["vertical-jump"] = "vertical-jump"
    jumpHeight: float = 0.0                       # cm
    takeoffAngle: float = 0.0                     # degrees, ankle-hip-shoulder
    landingStability: float = 0.0                 # 0..1
    repCount: int = 0


class SquatMetrics(MetricsBase):
    testType: Literal["squat"] = "squat"
    squatDepth: float = 0.0                       # degrees of knee flexion
    kneeAlignment: float = 0.0                    # 0..1
    repCount: int = 0


class SprintMetrics(MetricsBase):
    testType: Literal["sprint"] = "sprint"
    runTime: float = 0.0                          # seconds
    strideLength: float = 0.0                     # scene units per step
    cadence: float = 0.0                          # steps per minute
    distance: float = 0.0                         # declared metres


class PushUpMetrics(MetricsBase):
    testType: Literal["push-up"] = "push-up"
    repCount: int = 0
    formQuality: float = 0.0                      # fraction of full-depth reps
    rangeOfMotion: float = 0.0                    # mean elbow swing, degrees


TestMetrics = Annotated[
    Union[VerticalJumpMetrics, SquatMetrics, SprintMetrics, PushUpMetrics],
    Field(discriminator="testType"),
]


# ---------------------------------------------------------------------------
# Assessment
# ---------------------------------------------------------------------------

class AnomalyReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    flags: List[AnomalyFlag] = Field(default_factory=list)
    meanConfidence: float = 0.0
    durationDeltaSeconds: float = 0.0

    @property
    def cheat_detected(self) -> bool:
        return len(self.flags) > 0


class AIAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    posePoints: List[Dict[str, Keypoint]]
    repCount: int = 0
    biomechanicalScore: float = Field(ge=0.0, le=100.0)
    cheatDetected: bool = False
    confidenceScore: float = 0.0
    anomalies: List[AnomalyFlag] = Field(default_factory=list)


class ProofChain(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    previousHash: Optional[str] = None
    integrity: bool = True


class Ranking(BaseModel):
    model_config = ConfigDict(frozen=True)

    percentile: int
    category: str


class Assessment(BaseModel):
    """
    Immutable result of one submitted recording.
    Only `ranking` is ever filled in afterwards, on a copy.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    athleteId: str
    testType: TestType
    timestamp: datetime
    aiAnalysis: AIAnalysis
    kineticBlueprint: KineticBlueprint
    performanceMetrics: TestMetrics
    proofChain: ProofChain
    ranking: Optional[Ranking] = None
