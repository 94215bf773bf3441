"""
Replay-signature index.
The engine reads it to spot replayed clips and registers the signature of every
clean assessment. Writes are serialized so two concurrent submissions of the
same clip cannot both claim the signature.
"""

import threading
from typing import Dict, Optional, Protocol

from kinetic_engine.utils.logging_utils import logger


class SignatureIndex(Protocol):
    def has_seen_signature(self, signature: str, assessment_id: Optional[str] = None) -> bool:
        """True if the signature is owned by an assessment other than `assessment_id`"""
        ...

    def record_signature(self, signature: str, assessment_id: str) -> bool:
        """Register the signature; False if another assessment already owns it"""
        ...


class InMemorySignatureIndex:
    """
    Process-local signature index.
    Reads go straight to the dict; inserts take the write lock and check
    ownership atomically.
    """

    def __init__(self):
        self._owners: Dict[str, str] = {}
        self._write_lock = threading.Lock()

    def has_seen_signature(self, signature: str, assessment_id: Optional[str] = None) -> bool:
        owner = self._owners.get(signature)
        return owner is not None and owner != assessment_id

    def owner_of(self, signature: str) -> Optional[str]:
        return self._owners.get(signature)

    def record_signature(self, signature: str, assessment_id: str) -> bool:
        with self._write_lock:
            owner = self._owners.get(signature)
            if owner is not None and owner != assessment_id:
                logger.warning(f"Signature {signature[:12]} already recorded by assessment {owner}")
                return False
            self._owners[signature] = assessment_id
        logger.info(f"Recorded signature {signature[:12]} for assessment {assessment_id}")
        return True

    def __len__(self) -> int:
        return len(self._owners)
