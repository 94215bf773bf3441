import json
import sys
from typing import Optional, Sequence

from kinetic_engine.config import config
from kinetic_engine.errors import InsufficientPoseData, InvalidSequence
from kinetic_engine.models.normalizer import load_recording
from kinetic_engine.services.assessment_service import AssessmentEngine
from kinetic_engine.services.debug_service import debug_service
from kinetic_engine.services.signature_index import InMemorySignatureIndex
from kinetic_engine.utils.feedback import generate_feedback
from kinetic_engine.utils.logging_utils import logger, setup_logging


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Assess one recording file and emit the assessment JSON.
    Exit codes: 0 success, 1 unreadable input, 2 recording rejected.
    """
    config.setup_from_args(argv)
    setup_logging()
    logger.info(f"Starting in: {config.mode_description}")

    try:
        payload = json.loads(config.input_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read recording {config.input_path}: {e}")
        return 1

    engine = AssessmentEngine(InMemorySignatureIndex(), cfg=config)
    try:
        recording = load_recording(payload)
        assessment, report = engine.assess_with_report(
            recording, config.athlete_id, previous_hash=config.previous_hash
        )
    except (InvalidSequence, InsufficientPoseData) as e:
        logger.error(f"Analysis failed: {e}")
        print("analysis failed, please retry", file=sys.stderr)
        return 2

    debug_service.save_debug_report(assessment, report)
    logger.info(generate_feedback(assessment))

    output = assessment.model_dump_json(indent=2)
    if config.output_path:
        config.output_path.write_text(output, encoding="utf-8")
        logger.info(f"Assessment written to {config.output_path}")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
