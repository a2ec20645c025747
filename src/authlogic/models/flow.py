"""Authorization flow models.

Contains the persisted flow record that bridges a redirect and its callback,
the authorization request URL builder, and callback parsing.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, quote, urlparse

from pydantic import BaseModel, ConfigDict, Field

from authlogic.models.security import PkceChallenge

# Characters encodeURIComponent leaves untouched besides alphanumerics and "_.-"
_URI_COMPONENT_SAFE = "!~*'()"


def encode_component(value: str) -> str:
    """Percent-encode a single query value."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


class FlowState(BaseModel):
    """Ephemeral record created when a redirect starts.

    Persisted under the ``flow`` key and consumed exactly once when the
    callback is handled.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    nonce: str
    state: str
    pkce: PkceChallenge
    origin_uri: str = Field(alias="originUri")


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the redirect to ``/authorize``."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    state: str
    nonce: str
    scope: str
    code_challenge: str
    code_challenge_method: str | None = None

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL.

        Field order is fixed. ``client_id``, ``state`` and ``nonce`` are sent
        verbatim; the other values are percent-encoded.
        """
        query = (
            f"client_id={self.client_id}"
            f"&redirect_uri={encode_component(self.redirect_uri)}"
            f"&state={self.state}"
            f"&nonce={self.nonce}"
            "&response_type=code"
            f"&scope={encode_component(self.scope)}"
            f"&code_challenge={encode_component(self.code_challenge)}"
        )
        if self.code_challenge_method:
            query += f"&code_challenge_method={self.code_challenge_method}"

        return f"{self.authorization_endpoint}?{query}"


@dataclass(frozen=True)
class AuthorizationResponse:
    """Callback parameters returned by the authorization server."""

    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None

    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_url(cls, url: str) -> AuthorizationResponse:
        """Parse the callback parameters out of a full URL or bare query."""
        query = urlparse(url).query if "?" in url else url.lstrip("?")
        query_params = parse_qs(query)

        # Extract single values from query parameter lists
        def get_single_param(key: str) -> str | None:
            values = query_params.get(key, [])
            return values[0] if values else None

        return cls(
            code=get_single_param("code"),
            state=get_single_param("state"),
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
        )
