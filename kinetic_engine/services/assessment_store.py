"""
In-memory assessment store.
Stands in for the external store: keeps finished assessments per athlete and
answers the previous-hash lookup the proof chain needs.
"""

import threading
from typing import Dict, List, Optional, Protocol

from kinetic_engine.models.schemas import Assessment
from kinetic_engine.utils.logging_utils import logger


class PreviousHashLookup(Protocol):
    def get_previous_hash(self, athlete_id: str) -> Optional[str]:
        ...


class InMemoryAssessmentStore:
    def __init__(self):
        self._assessments: Dict[str, Assessment] = {}
        self._by_athlete: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def save(self, assessment: Assessment):
        with self._lock:
            if assessment.id in self._assessments:
                raise ValueError(f"Assessment {assessment.id} already stored")
            self._assessments[assessment.id] = assessment
            self._by_athlete.setdefault(assessment.athleteId, []).append(assessment.id)
        logger.info(f"Stored assessment {assessment.id} for athlete {assessment.athleteId}")

    def get(self, assessment_id: str) -> Optional[Assessment]:
        return self._assessments.get(assessment_id)

    def history(self, athlete_id: str) -> List[Assessment]:
        """Athlete's assessments, oldest first"""
        with self._lock:
            ids = list(self._by_athlete.get(athlete_id, []))
        return [self._assessments[i] for i in ids]

    def get_previous_hash(self, athlete_id: str) -> Optional[str]:
        with self._lock:
            ids = self._by_athlete.get(athlete_id)
            if not ids:
                return None
            return self._assessments[ids[-1]].proofChain.hash
