# metric_extractors.py
"""
Dispatch from test type to its metric extractor.
Each extractor is a plain function of the blueprint; a test type selects one
through the EXTRACTORS table.
"""

from typing import Callable, Dict, Optional, Union

from kinetic_engine.config import Config, config
from kinetic_engine.models.push_up_metrics import extract_push_up
from kinetic_engine.models.schemas import KineticBlueprint, TechniqueLabel, TestMetrics, TestType
from kinetic_engine.models.sprint_metrics import extract_sprint
from kinetic_engine.models.squat_metrics import extract_squat
from kinetic_engine.models.vertical_jump_metrics import extract_vertical_jump
from kinetic_engine.utils.logging_utils import logger

Extractor = Callable[[KineticBlueprint, Config], TestMetrics]

EXTRACTORS: Dict[TestType, Extractor] = {
    TestType.VERTICAL_JUMP: extract_vertical_jump,
    TestType.SQUAT: extract_squat,
    TestType.SPRINT: extract_sprint,
    TestType.PUSH_UP: extract_push_up,
}


def extract_metrics(
    test_type: Union[TestType, str],
    blueprint: KineticBlueprint,
    cfg: Optional[Config] = None,
) -> TestMetrics:
    """Run the extractor registered for `test_type`"""
    test_type = TestType(test_type)
    metrics = EXTRACTORS[test_type](blueprint, cfg or config)

    if metrics.technique == TechniqueLabel.UNDETERMINED:
        logger.warning(f"{test_type.value}: degraded result, technique undetermined")
    else:
        logger.info(f"{test_type.value}: score {metrics.score:.1f}, technique {metrics.technique.value}")
    return metrics


def rep_count(metrics: TestMetrics) -> int:
    """Repetitions reported by the metrics, 0 for tests without reps"""
    return getattr(metrics, "repCount", 0)
