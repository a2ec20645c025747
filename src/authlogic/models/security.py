"""Security-related models for the authorization flow.

Contains the PKCE verifier/challenge pair generated for each redirect.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PkceChallenge:
    """PKCE (Proof Key for Code Exchange) pair for a single flow attempt.

    The verifier stays on the client until the token exchange; only the
    challenge is sent with the authorization request (RFC 7636).
    """

    verifier: str = field()
    challenge: str = field()

    def __post_init__(self) -> None:
        if not self.verifier:
            raise ValueError("verifier must not be empty")
        if not self.challenge:
            raise ValueError("challenge must not be empty")
