"""
Proof-of-performance chain.
Each assessment carries a SHA-256 hash over its identity fields and the hash of
the athlete's previous assessment, so records can be re-verified later and
their per-athlete order checked.
"""

import hashlib
from datetime import datetime
from typing import Optional, Sequence, Union

from kinetic_engine.errors import InvalidProofInput
from kinetic_engine.models.schemas import Assessment, ProofChain, TestType
from kinetic_engine.utils.logging_utils import logger


def proof_payload(
    assessment_id: str,
    athlete_id: str,
    test_type: Union[TestType, str],
    created_at: datetime,
) -> str:
    """
    Exact hash input: "<assessment id>|<athlete id>|<test type>|<ISO-8601 creation time>".
    """
    if not assessment_id or not athlete_id or not test_type:
        raise InvalidProofInput("assessment id, athlete id and test type are required")
    if not isinstance(created_at, datetime):
        raise InvalidProofInput("creation timestamp must be a datetime")

    try:
        test_type = TestType(test_type).value
    except ValueError as e:
        raise InvalidProofInput(f"unknown test type: {test_type!r}") from e
    return f"{assessment_id}|{athlete_id}|{test_type}|{created_at.isoformat()}"


def compute_hash(assessment_id: str, athlete_id: str, test_type: Union[TestType, str], created_at: datetime) -> str:
    payload = proof_payload(assessment_id, athlete_id, test_type, created_at)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def build_proof(
    assessment_id: str,
    athlete_id: str,
    test_type: Union[TestType, str],
    created_at: datetime,
    previous_hash: Optional[str] = None,
) -> ProofChain:
    """Create the proof record for a new assessment, linked to `previous_hash`"""
    digest = compute_hash(assessment_id, athlete_id, test_type, created_at)
    logger.info(f"Proof hash {digest[:12]} for assessment {assessment_id} (previous: {previous_hash and previous_hash[:12]})")
    return ProofChain(hash=digest, previousHash=previous_hash, integrity=True)


def verify(assessment: Assessment) -> bool:
    """Recompute the proof hash from the stored fields and compare"""
    try:
        expected = compute_hash(
            assessment.id, assessment.athleteId, assessment.testType, assessment.timestamp
        )
    except InvalidProofInput as e:
        logger.warning(f"Cannot verify assessment {assessment.id!r}: {e}")
        return False

    if expected != assessment.proofChain.hash:
        logger.warning(f"Proof hash mismatch for assessment {assessment.id}")
        return False
    return True


def verify_chain(assessments: Sequence[Assessment]) -> bool:
    """
    Verify a per-athlete history, oldest first: every record must verify and
    link to the hash of the record before it.
    """
    for prev, cur in zip(assessments, assessments[1:]):
        if cur.proofChain.previousHash != prev.proofChain.hash:
            logger.warning(f"Chain broken between assessments {prev.id} and {cur.id}")
            return False
    return all(verify(assessment) for assessment in assessments)
