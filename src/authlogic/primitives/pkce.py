"""PKCE (Proof Key for Code Exchange) challenge generation.

Implements the S256 transform of RFC 7636: the verifier is 32 random bytes
encoded as base64url, the challenge is BASE64URL(SHA256(ASCII(verifier))).
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from collections.abc import Callable

from authlogic.models.security import PkceChallenge

VERIFIER_BYTES = 32


def base64url(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


class PkceChallengeGenerator:
    """Creates a fresh verifier/challenge pair for each authorization flow.

    The output is a pure function of the random source, so tests can pass a
    fixed ``random_bytes`` to get a known pair. Failures of the random source
    propagate to the caller.
    """

    def __init__(self, random_bytes: Callable[[int], bytes] = secrets.token_bytes):
        self._random_bytes = random_bytes

    def create(self) -> PkceChallenge:
        """Generate new PKCE parameters.

        Returns:
            PkceChallenge: Verifier to keep and challenge to send
        """
        verifier = base64url(self._random_bytes(VERIFIER_BYTES))
        return PkceChallenge(verifier=verifier, challenge=self.challenge_for(verifier))

    @staticmethod
    def challenge_for(verifier: str) -> str:
        """Derive the S256 code challenge for ``verifier``."""
        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        return base64url(digest)
