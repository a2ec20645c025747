"""Client configuration.

``AuthParams`` holds everything ``init`` needs. Values can be given directly
or loaded from the environment (and a ``.env`` file) with ``from_env``.
"""

from __future__ import annotations

import os

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from authlogic.models.errors import ConfigurationError

DEFAULT_STORAGE_NAMESPACE = "authlogic.storage"

_ENV_FIELDS = {
    "ISSUER": "issuer",
    "CLIENT_ID": "client_id",
    "SCOPE": "scope",
    "REFRESH_MARGIN": "refresh_margin",
    "REFRESH_LIMIT": "refresh_limit",
    "STATE_LENGTH": "state_length",
    "FETCH_USER_INFO": "fetch_user_info",
    "SEND_CHALLENGE_METHOD": "send_challenge_method",
    "REQUIRE_STATE": "require_state",
    "STORAGE_NAMESPACE": "storage_namespace",
}


class AuthParams(BaseModel):
    """Issuer, client and flow options. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    issuer: str = Field(min_length=1)
    client_id: str = Field(min_length=1)
    scope: str = ""

    # Seconds before expiry at which the silent refresh fires
    refresh_margin: int = Field(default=30, ge=0)
    # None means refresh for as long as the server keeps issuing tokens
    refresh_limit: int | None = Field(default=None, ge=0)
    state_length: int = Field(default=32, ge=8)
    fetch_user_info: bool = True
    send_challenge_method: bool = False
    require_state: bool = False
    storage_namespace: str = Field(default=DEFAULT_STORAGE_NAMESPACE, min_length=1)

    @field_validator("issuer")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def authorization_endpoint(self) -> str:
        return f"{self.issuer}/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.issuer}/oauth/token"

    @property
    def userinfo_endpoint(self) -> str:
        return f"{self.issuer}/userinfo"

    @classmethod
    def build(cls, **values) -> AuthParams:
        """Validate ``values``, raising ConfigurationError instead of pydantic's."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid authentication params: {e}") from e

    @classmethod
    def from_env(cls, prefix: str = "AUTHLOGIC_", **overrides) -> AuthParams:
        """Build params from ``<prefix>ISSUER``, ``<prefix>CLIENT_ID`` and friends.

        A ``.env`` file found from the working directory upwards is read
        first; variables set in the process environment win. Keyword
        overrides win over both. The process environment is not modified.
        """
        environ = {**dotenv_values(find_dotenv(usecwd=True)), **os.environ}

        values = {}
        for suffix, field_name in _ENV_FIELDS.items():
            raw = environ.get(f"{prefix}{suffix}")
            if raw is not None and raw != "":
                values[field_name] = raw
        values.update(overrides)

        return cls.build(**values)
