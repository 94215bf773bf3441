from datetime import datetime, timezone

import pytest

from kinetic_engine.errors import InvalidProofInput
from kinetic_engine.models import schemas
from kinetic_engine.services.assessment_service import AssessmentEngine
from kinetic_engine.services.assessment_store import InMemoryAssessmentStore
from kinetic_engine.services.proof_chain import build_proof, compute_hash, proof_payload, verify, verify_chain
from kinetic_engine.services.signature_index import InMemorySignatureIndex

from tests.synthetic import build_recording, jump_recording, push_up_poses, squat_poses

CREATED = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def assessment():
    engine = AssessmentEngine(InMemorySignatureIndex())
    return engine.assess(jump_recording(), "athlete-1", assessment_id="as-1", created_at=CREATED)


class TestPayload:
    def test_format(self):
        assert proof_payload("as-1", "athlete-1", schemas.TestType.SQUAT, CREATED) == (
            "as-1|athlete-1|squat|2024-05-01T09:30:00+00:00"
        )

    def test_hash_is_sha256_hex(self):
        digest = compute_hash("as-1", "athlete-1", "squat", CREATED)
        assert len(digest) == 64
        assert digest == compute_hash("as-1", "athlete-1", schemas.TestType.SQUAT, CREATED)

    @pytest.mark.parametrize("assessment_id, athlete_id, test_type", [
        ("", "athlete-1", "squat"),
        ("as-1", "", "squat"),
        ("as-1", "athlete-1", ""),
        ("as-1", "athlete-1", "plank"),
    ])
    def test_missing_fields(self, assessment_id, athlete_id, test_type):
        with pytest.raises(InvalidProofInput):
            proof_payload(assessment_id, athlete_id, test_type, CREATED)

    def test_timestamp_must_be_datetime(self):
        with pytest.raises(InvalidProofInput):
            proof_payload("as-1", "athlete-1", "squat", "2024-05-01")

    def test_build_proof_links_previous(self):
        proof = build_proof("as-2", "athlete-1", "squat", CREATED, previous_hash="f" * 64)
        assert proof.previousHash == "f" * 64
        assert proof.integrity


class TestVerify:
    def test_untouched_assessment(self, assessment):
        assert verify(assessment)

    def test_tampered_athlete(self, assessment):
        assert not verify(assessment.model_copy(update={"athleteId": "athlete-2"}))

    def test_tampered_timestamp(self, assessment):
        later = CREATED.replace(minute=31)
        assert not verify(assessment.model_copy(update={"timestamp": later}))

    def test_empty_id_fails_verification(self, assessment):
        assert not verify(assessment.model_copy(update={"id": ""}))


class TestVerifyChain:
    @pytest.fixture
    def history(self):
        store = InMemoryAssessmentStore()
        engine = AssessmentEngine(InMemorySignatureIndex(), store)
        recordings = [
            jump_recording(),
            build_recording(schemas.TestType.SQUAT, squat_poses()),
            build_recording(schemas.TestType.PUSH_UP, push_up_poses()),
        ]
        for recording in recordings:
            store.save(engine.assess(recording, "athlete-1"))
        return store.history("athlete-1")

    def test_linked_history(self, history):
        assert history[0].proofChain.previousHash is None
        assert history[1].proofChain.previousHash == history[0].proofChain.hash
        assert verify_chain(history)

    def test_reordered_history(self, history):
        assert not verify_chain([history[1], history[0], history[2]])

    def test_tampered_record_in_history(self, history):
        history[2] = history[2].model_copy(update={"athleteId": "athlete-2"})
        assert not verify_chain(history)

    def test_empty_history(self):
        assert verify_chain([])
