"""Token request, response and authentication models.

Contains the form-encoded token endpoint requests, the validated token
response, and the authentication record kept in memory and in storage.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange request (RFC 6749 Section 4.1.3).

    Carries the PKCE ``code_verifier`` stored when the redirect started.
    """

    token_endpoint: str
    code: str
    code_verifier: str
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for an application/x-www-form-urlencoded body."""
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "code_verifier": self.code_verifier,
        }


@dataclass(frozen=True)
class RefreshTokenRequest:
    """Refresh token request (RFC 6749 Section 6)."""

    token_endpoint: str
    refresh_token: str
    grant_type: str = "refresh_token"

    def to_form_data(self) -> dict[str, str]:
        return {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
        }


class AuthenticationResult(BaseModel):
    """Tokens obtained from a successful exchange or refresh.

    Replaced wholesale on every refresh. Persisted with camelCase keys
    under the ``auth`` storage key.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    access_token: str = Field(alias="accessToken")
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    id_token: str | None = Field(default=None, alias="idToken")
    expires_in: int | None = Field(default=None, alias="expiresIn")


class TokenResponse(BaseModel):
    """Token endpoint response (RFC 6749 Section 5).

    Represents both successful responses (Section 5.1) and error responses
    (Section 5.2). Unknown fields are ignored.
    """

    # Success response fields (RFC 6749 Section 5.1)
    access_token: str | None = None
    expires_in: int | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    scope: str | None = None

    # Error response fields (RFC 6749 Section 5.2)
    error: str | None = None
    error_description: str | None = None

    def is_success(self) -> bool:
        """Check if token response indicates success."""
        return self.error is None and self.access_token is not None

    def is_error(self) -> bool:
        """Check if token response indicates an error."""
        return self.error is not None

    def to_authentication(
        self, previous: AuthenticationResult | None = None
    ) -> AuthenticationResult:
        """Convert a successful response to an AuthenticationResult.

        A refresh response may omit ``refresh_token``; the previous one is
        carried over in that case.

        Raises:
            ValueError: If response is not successful
        """
        if not self.is_success():
            raise ValueError("Cannot convert error response to AuthenticationResult")

        refresh_token = self.refresh_token
        if refresh_token is None and previous is not None:
            refresh_token = previous.refresh_token

        return AuthenticationResult(
            access_token=self.access_token,
            refresh_token=refresh_token,
            id_token=self.id_token,
            expires_in=self.expires_in,
        )
