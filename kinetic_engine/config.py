import argparse
import copy
from pathlib import Path
from typing import List, Optional, Sequence

class Config:
    """
    Central configuration for the kinetic blueprinting engine.
    Holds the runner's debug mode, pose-cleaning thresholds, per-test metric
    parameters and the anomaly-detection switches.
    """

    def __init__(self):
        # Application mode settings
        self.debug_mode: str = "debug_no_save"
        self.save_reports: bool = False
        self.debug_dir: Optional[Path] = None

        # Runner arguments (filled by setup_from_args)
        self.input_path: Optional[Path] = None
        self.output_path: Optional[Path] = None
        self.athlete_id: Optional[str] = None
        self.previous_hash: Optional[str] = None

        # Pose sequence thresholds
        self.min_confidence: float = 0.3  # Keypoints below this are treated as absent
        self.expected_fps: float = 30.0  # Capture frame rate the detector is fed at
        self.min_frame_ratio: float = 0.5  # Fraction of expected frames required
        self.min_angle_frame_ratio: float = 0.5  # Fraction of frames that must yield a joint angle

        # Blueprint settings
        self.stability_gain: float = 100.0  # Weight of confidence variance in stability
        self.height_scale_cm: float = 100.0  # Scene units to centimetres

        # Rep counting parameters
        self.rep_cooldown: float = 0.5  # Seconds between rep minima to prevent double counting
        self.min_consecutive_frames: int = 3  # Frames needed to confirm a sustained movement
        self.min_movement_range: float = 15.0  # Minimum angle range (degrees) for a valid set

        # Vertical jump
        self.jump_ground_frames: int = 5  # Leading frames used to estimate ground level
        self.jump_ground_tolerance: float = 0.03  # Centroid distance (units) still counted as ground
        self.min_jump_height_cm: float = 2.0
        self.landing_window_seconds: float = 0.3

        # Squat
        self.squat_rep_angle: float = 120.0  # Knee angle a rep minimum must go below
        self.squat_up_angle: float = 150.0  # Knee angle to climb back above between reps

        # Sprint
        self.sprint_distance_m: float = 100.0  # Declared distance when the recording gives none
        self.sprint_velocity_threshold: float = 1.0  # Centroid speed (units/s) counted as running

        # Push-up
        self.pushup_rep_angle: float = 105.0  # Elbow angle a rep minimum must go below
        self.pushup_up_angle: float = 135.0  # Elbow angle to climb back above between reps
        self.pushup_full_depth_angle: float = 90.0  # Elbow angle counted as a full-depth rep

        # Scoring weights
        self.confidence_bonus_scale: float = 10.0
        self.confidence_bonus_cap: float = 10.0
        self.cheat_penalty: float = -20.0

        # Anomaly detection switches
        self.check_low_confidence: bool = True
        self.check_plausibility: bool = True
        self.check_replay: bool = True
        self.check_duration: bool = True

        # Anomaly detection thresholds
        self.min_mean_confidence: float = 0.7
        self.max_jump_height_cm: float = 80.0
        self.max_sprint_speed: float = 100.0 / 9.58  # Men's 100 m world record pace (m/s)
        self.max_reps_per_second: float = 1.5
        self.duration_tolerance_seconds: float = 0.5
        self.duration_tolerance_ratio: float = 0.1

        # Supported test types
        self.supported_tests = ["vertical-jump", "squat", "sprint", "push-up"]

        # Human-readable descriptions for each debug mode
        self.mode_descriptions = {
            "debug": "Debug Mode (with report saving)",
            "debug_no_save": "Debug Mode (without report saving)",
            "non_debug": "Non-Debug Mode (minimal logging)"
        }

    def setup_from_args(self, argv: Optional[Sequence[str]] = None):
        """
        Parse command line arguments and configure the runner.
        Creates the debug directory if report saving is enabled.
        """
        parser = argparse.ArgumentParser(description="Kinetic blueprint assessment runner")
        parser.add_argument("recording", type=Path, help="Recording JSON (testType, declaredDurationSeconds, frames)")
        parser.add_argument("--athlete-id", required=True, help="Athlete the assessment belongs to")
        parser.add_argument("--previous-hash", default=None, help="Proof hash of the athlete's previous assessment")
        parser.add_argument("--output", type=Path, default=None, help="Write the assessment JSON here instead of stdout")
        parser.add_argument(
            "--mode",
            choices=["debug", "debug_no_save", "non_debug"],
            default="debug_no_save",
            help="Debug mode setting"
        )
        args = parser.parse_args(argv)

        self.input_path = args.recording
        self.output_path = args.output
        self.athlete_id = args.athlete_id
        self.previous_hash = args.previous_hash
        self.debug_mode = args.mode
        self.save_reports = (self.debug_mode == "debug")

        # Create debug report directory if needed
        if self.save_reports:
            self.debug_dir = Path("debug_reports")
            self.debug_dir.mkdir(exist_ok=True)

    def copy_with(self, **overrides) -> "Config":
        """Return a shallow copy with the given attributes replaced"""
        clone = copy.copy(self)
        for name, value in overrides.items():
            if not hasattr(clone, name):
                raise AttributeError(f"Unknown config option: {name}")
            setattr(clone, name, value)
        return clone

    @property
    def enabled_checks(self) -> List[str]:
        """Names of the anomaly checks currently switched on"""
        checks = {
            "low_confidence": self.check_low_confidence,
            "implausible_metric": self.check_plausibility,
            "replay_detected": self.check_replay,
            "duration_mismatch": self.check_duration,
        }
        return [name for name, enabled in checks.items() if enabled]

    @property
    def mode_description(self) -> str:
        """Get human-readable description of current mode"""
        return self.mode_descriptions[self.debug_mode]

# Global configuration instance - import this in other modules
config = Config()
