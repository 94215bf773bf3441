import json
from kinetic_engine.config import config
from kinetic_engine.models.schemas import Assessment, AnomalyReport
from kinetic_engine.utils.logging_utils import logger

class DebugService:
    """
    Debug report saving service for development and threshold tuning.
    Writes the blueprint and anomaly report of an assessment when debug mode is enabled.
    """

    @staticmethod
    def save_debug_report(assessment: Assessment, report: AnomalyReport):
        """
        Save the assessment's blueprint and anomaly report to disk if report saving is enabled.
        File name carries the assessment id and test type.
        """
        if not config.save_reports or not config.debug_dir:
            return

        payload = {
            "assessmentId": assessment.id,
            "testType": assessment.testType.value,
            "performanceMetrics": assessment.performanceMetrics.model_dump(mode="json"),
            "anomalies": report.model_dump(mode="json"),
            "kineticBlueprint": assessment.kineticBlueprint.model_dump(mode="json"),
        }

        filename = f"report_{assessment.testType.value}_{assessment.id}.json"
        filepath = config.debug_dir / filename
        try:
            filepath.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Error saving debug report: {e}")
            return
        logger.debug(f"Debug report saved: {filename}")

# Global service instance
debug_service = DebugService()
