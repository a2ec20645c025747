"""Exception hierarchy for the PKCE authorization flow.

Provides specific exception types for each failure mode of ``secure()`` so
callers can tell a misconfigured client from a provider rejection or a stale
callback. Transport failures are not wrapped: ``httpx.HTTPError`` reaches the
caller unchanged.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all authorization flow errors."""

    pass


class ConfigurationError(OAuth2Error):
    """Raised when the engine is used before ``init`` or with invalid params."""

    pass


class ProviderError(OAuth2Error):
    """Raised when the authorization server reports an OAuth error.

    Covers both error callbacks (``?error=...``) and error bodies returned by
    the token endpoint.
    """

    def __init__(self, category: str, description: str | None = None):
        self.category = category
        self.description = description or ""
        super().__init__(f"[{self.category}] {self.description}")


class StateMismatchError(ProviderError):
    """Raised when the callback ``state`` does not match the stored flow."""

    def __init__(self, description: str = "State parameter mismatch"):
        super().__init__("invalid_state", description)


class MissingFlowStateError(OAuth2Error):
    """Raised when a code callback arrives with no matching stored flow.

    This happens for stale or duplicated callbacks, cleared storage, or a
    callback landing in a different browsing context than the redirect.
    """

    def __init__(self, message: str = "Nothing in storage"):
        super().__init__(message)


class NotAuthenticatedError(OAuth2Error):
    """Raised when a profile fetch is attempted without authentication."""

    pass


class InvalidResponseError(OAuth2Error):
    """Raised when a token or profile response body fails validation."""

    pass
