"""Security utilities for the authorization flow.

Provides the opaque ``state`` and ``nonce`` values sent with the redirect and
the comparison used when the callback comes back.
"""

from __future__ import annotations

import secrets
import string

from authlogic.models.errors import StateMismatchError

RANDOM_ALPHABET = string.ascii_letters + string.digits


def generate_random_string(length: int = 32) -> str:
    """Generate a cryptographically secure random string.

    Args:
        length: Number of characters, drawn from ``[A-Za-z0-9]``

    Returns:
        Random opaque string usable as ``state`` or ``nonce``
    """
    return "".join(secrets.choice(RANDOM_ALPHABET) for _ in range(length))


def validate_state(expected: str, actual: str | None, required: bool = False) -> None:
    """Validate the callback state against the one stored at redirect time.

    A callback without ``state`` passes unless ``required`` is set.

    Raises:
        StateMismatchError: If state parameters don't match
    """
    if actual is None:
        if required:
            raise StateMismatchError("Callback is missing the state parameter")
        return

    if not secrets.compare_digest(expected.encode(), actual.encode()):
        raise StateMismatchError("State parameter mismatch - possible CSRF attack")
