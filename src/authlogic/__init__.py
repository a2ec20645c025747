"""OAuth 2.0 authorization code flow with PKCE for redirect-based clients."""

from __future__ import annotations

from authlogic.config import AuthParams
from authlogic.models.errors import (
    ConfigurationError,
    InvalidResponseError,
    MissingFlowStateError,
    NotAuthenticatedError,
    OAuth2Error,
    ProviderError,
    StateMismatchError,
)
from authlogic.models.security import PkceChallenge
from authlogic.models.tokens import AuthenticationResult
from authlogic.models.userinfo import UserInfo
from authlogic.primitives.navigation import InMemoryNavigator, Navigator
from authlogic.primitives.pkce import PkceChallengeGenerator
from authlogic.primitives.storage import JsonFileStorage, KeyValueStore, MemoryStorage
from authlogic.secure import AuthorizationFlowEngine


def create(
    storage: KeyValueStore | None = None,
    navigator: Navigator | None = None,
) -> AuthorizationFlowEngine:
    """Build an engine with the default PKCE source and HTTP client."""
    return AuthorizationFlowEngine(
        pkce_generator=PkceChallengeGenerator(),
        storage=storage,
        navigator=navigator,
    )


__all__ = [
    "AuthParams",
    "AuthenticationResult",
    "AuthorizationFlowEngine",
    "ConfigurationError",
    "InMemoryNavigator",
    "InvalidResponseError",
    "JsonFileStorage",
    "KeyValueStore",
    "MemoryStorage",
    "MissingFlowStateError",
    "Navigator",
    "NotAuthenticatedError",
    "OAuth2Error",
    "PkceChallenge",
    "PkceChallengeGenerator",
    "ProviderError",
    "StateMismatchError",
    "UserInfo",
    "create",
]
