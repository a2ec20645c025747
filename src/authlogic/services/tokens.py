"""Token and profile endpoint client.

Implements the RFC 6749 token endpoint interactions used by the flow, plus
the bearer-authenticated profile fetch, on top of ``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from authlogic.models.errors import InvalidResponseError
from authlogic.models.tokens import RefreshTokenRequest, TokenRequest, TokenResponse
from authlogic.models.userinfo import UserInfo

logger = logging.getLogger(__name__)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


class OAuth2TokenClient:
    """Talks to the issuer's token and userinfo endpoints.

    Handles:
    - Authorization code to token exchange with PKCE (RFC 7636)
    - Access token refresh (RFC 6749 Section 6)
    - Profile fetch with a bearer token

    Transport failures (``httpx.HTTPError``) are not caught here; they reach
    the caller unchanged. Error statuses without an OAuth error body raise
    ``httpx.HTTPStatusError``. No timeout is imposed beyond the client's own.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None):
        self._http_client = http_client or httpx.AsyncClient()

    async def exchange_code(self, token_request: TokenRequest) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Returns:
            TokenResponse: Token response (success or error)

        Raises:
            InvalidResponseError: If the body is neither a token nor an error
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        response = await self._http_client.post(
            token_request.token_endpoint,
            data=token_request.to_form_data(),
            headers=FORM_HEADERS,
        )
        return self._parse_token_response(response)

    async def refresh(self, refresh_request: RefreshTokenRequest) -> TokenResponse:
        """Obtain a new access token with a refresh token."""
        logger.debug(f"Refreshing access token at {refresh_request.token_endpoint}")

        response = await self._http_client.post(
            refresh_request.token_endpoint,
            data=refresh_request.to_form_data(),
            headers=FORM_HEADERS,
        )
        return self._parse_token_response(response)

    async def fetch_user_info(self, userinfo_endpoint: str, access_token: str) -> UserInfo:
        """Fetch the profile of the token's subject.

        Raises:
            InvalidResponseError: If the body is not a valid profile
        """
        logger.debug(f"Fetching user info from {userinfo_endpoint}")

        response = await self._http_client.get(
            userinfo_endpoint,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        response.raise_for_status()
        data = self._json_body(response)

        try:
            return UserInfo.model_validate(data)
        except ValidationError as e:
            raise InvalidResponseError(f"Invalid user info response: {e}") from e

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        """Validate a token endpoint body.

        Success and error bodies are both JSON (RFC 6749 Section 5). An error
        status whose body carries no OAuth error is a transport failure.
        """
        data = self._json_body(response)
        if response.status_code >= 400 and "error" not in data:
            response.raise_for_status()

        try:
            token_response = TokenResponse.model_validate(data)
        except ValidationError as e:
            raise InvalidResponseError(f"Invalid token response format: {e}") from e

        if token_response.is_error():
            logger.warning(
                f"Token endpoint returned {response.status_code}: "
                f"{token_response.error} - {token_response.error_description}"
            )
        elif token_response.access_token is None:
            raise InvalidResponseError("Token response missing required access_token")
        else:
            logger.info("Token request successful")

        return token_response

    def _json_body(self, response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            if response.status_code >= 400:
                response.raise_for_status()
            raise InvalidResponseError(f"Response is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise InvalidResponseError("Response body is not a JSON object")
        return data

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
