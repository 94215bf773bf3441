from concurrent.futures import ThreadPoolExecutor

from kinetic_engine.services.signature_index import InMemorySignatureIndex


class TestInMemorySignatureIndex:
    def test_record_and_lookup(self):
        index = InMemorySignatureIndex()
        assert not index.has_seen_signature("sig")
        assert index.record_signature("sig", "a1")
        assert index.has_seen_signature("sig")
        assert index.owner_of("sig") == "a1"

    def test_second_owner_rejected(self):
        index = InMemorySignatureIndex()
        index.record_signature("sig", "a1")
        assert not index.record_signature("sig", "a2")
        assert index.owner_of("sig") == "a1"

    def test_same_owner_is_idempotent(self):
        index = InMemorySignatureIndex()
        index.record_signature("sig", "a1")
        assert index.record_signature("sig", "a1")
        assert len(index) == 1

    def test_concurrent_claims(self):
        index = InMemorySignatureIndex()
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda i: index.record_signature("sig", f"a{i}"), range(64)))

        assert results.count(True) == 1
        winner = f"a{results.index(True)}"
        assert index.owner_of("sig") == winner

    def test_owner_does_not_see_its_own_signature(self):
        index = InMemorySignatureIndex()
        index.record_signature("sig", "a1")
        assert not index.has_seen_signature("sig", "a1")
        assert index.has_seen_signature("sig", "a2")
        assert index.has_seen_signature("sig", None)
