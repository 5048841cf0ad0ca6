"""
verifier.py

Responsibility: Authenticate fetched bytes before anything is built from them.

An empty expected digest is the trust-on-first-use placeholder: the run goes
ahead, but as `Trust.UNVERIFIED`, never as a pass.
"""

from __future__ import annotations

import enum
import hashlib
import hmac
import logging
from dataclasses import dataclass

from bottler.errors import IntegrityError

logger = logging.getLogger(__name__)


class Trust(str, enum.Enum):
    VERIFIED = "verified"
    UNVERIFIED = "unverified"


@dataclass(frozen=True)
class Verification:
    digest: str
    trust: Trust

    @property
    def verified(self) -> bool:
        return self.trust is Trust.VERIFIED


def compute_digest(data: bytes) -> str:
    """SHA-256 hex digest of the exact bytes."""
    return hashlib.sha256(data).hexdigest()


def verify(data: bytes, expected: str, *, strict: bool = False) -> Verification:
    actual = compute_digest(data)
    expected = (expected or "").strip().lower()

    if not expected:
        if strict:
            raise IntegrityError(f"No sha256 declared and a digest is required (actual: {actual})")
        logger.warning("UNVERIFIED source: no sha256 declared; computed sha256 is %s", actual)
        return Verification(digest=actual, trust=Trust.UNVERIFIED)

    if not hmac.compare_digest(actual.encode("ascii"), expected.encode("utf-8")):
        raise IntegrityError(f"SHA-256 mismatch: expected {expected}, got {actual}")

    logger.info("Verified sha256 %s", actual)
    return Verification(digest=actual, trust=Trust.VERIFIED)
