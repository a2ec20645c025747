"""Authorization flow engine.

Decides on every ``secure()`` call which phase of the PKCE authorization code
flow applies and runs it:

1. Restore: a complete session is already in storage.
2. Error callback: the authorization server redirected back with ``error``.
3. Code callback: exchange ``code`` plus the stored verifier for tokens.
4. Redirect start: create a flow record and navigate to ``/authorize``.

The flow record is the only state that crosses the redirect, so every phase
reads it from the store instead of from memory.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager

from authlogic.config import AuthParams
from authlogic.models.errors import (
    ConfigurationError,
    MissingFlowStateError,
    NotAuthenticatedError,
    ProviderError,
    StateMismatchError,
)
from authlogic.models.flow import AuthorizationRequest, AuthorizationResponse, FlowState
from authlogic.models.tokens import (
    AuthenticationResult,
    RefreshTokenRequest,
    TokenRequest,
)
from authlogic.models.userinfo import UserInfo
from authlogic.primitives.navigation import InMemoryNavigator, Navigator
from authlogic.primitives.pkce import PkceChallengeGenerator
from authlogic.primitives.storage import KeyValueStore, MemoryStorage
from authlogic.services.scheduler import ErrorCallback, TokenRefreshScheduler
from authlogic.services.security import generate_random_string, validate_state
from authlogic.services.store import FlowStateStore
from authlogic.services.tokens import OAuth2TokenClient

logger = logging.getLogger(__name__)


class AuthorizationFlowEngine:
    """Secures access to a protected resource for a redirect-based client.

    All collaborators are injectable so the engine runs outside a browser and
    under test. ``secure()``, ``get_user_info()`` and the background refresh
    share one lock, so they never interleave on the authentication record.
    """

    def __init__(
        self,
        pkce_generator: PkceChallengeGenerator | None = None,
        storage: KeyValueStore | None = None,
        navigator: Navigator | None = None,
        token_client: OAuth2TokenClient | None = None,
        random_string: Callable[[int], str] = generate_random_string,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.pkce_generator = pkce_generator or PkceChallengeGenerator()
        self.storage = storage if storage is not None else MemoryStorage()
        self.navigator = navigator or InMemoryNavigator()
        self.token_client = token_client or OAuth2TokenClient()
        self.random_string = random_string

        self.params: AuthParams | None = None
        self._store: FlowStateStore | None = None
        self._authentication: AuthenticationResult | None = None
        self._user_info: UserInfo | None = None
        self._origin_uri: str | None = None
        self._lock = asyncio.Lock()
        self._scheduler = TokenRefreshScheduler(self._refresh, sleep=sleep)

    @property
    def scheduler(self) -> TokenRefreshScheduler:
        return self._scheduler

    def init(self, params: AuthParams) -> None:
        """Configure the engine. Calling it again replaces the params."""
        self.params = params
        self._store = FlowStateStore(self.storage, params.storage_namespace)
        self._scheduler.margin = params.refresh_margin
        self._scheduler.limit = params.refresh_limit

    def get_authentication(self) -> AuthenticationResult | None:
        return self._authentication

    def on_refresh_error(self, callback: ErrorCallback) -> None:
        """Register an async callback receiving silent refresh failures."""
        self._scheduler.on_error(callback)

    async def secure(self) -> None:
        """Make sure the client is authenticated, starting the flow if needed.

        Returns without side effects when a session is restored or a callback
        completes. When a redirect is started it also returns; the host is
        navigating away at that point.

        Raises:
            ConfigurationError: If ``init`` was never called
            ProviderError: If the server reported an error
            MissingFlowStateError: If a code arrived without a stored flow
            httpx.HTTPError: If the token or profile request failed
        """
        async with self._lock:
            params, store = self._require_init()

            if self._restore(params, store):
                return

            callback = AuthorizationResponse.from_url(self.navigator.current_url())

            if callback.is_error():
                self._handle_error_callback(store, callback)
            elif callback.code is not None:
                await self._exchange_code(params, store, callback)
            else:
                self._start_redirect(params, store)

    async def get_user_info(self) -> UserInfo:
        """Return the profile, fetching it once if it is not cached yet.

        Raises:
            NotAuthenticatedError: If there is no current authentication
        """
        async with self._lock:
            if self._user_info is not None:
                return self._user_info
            if self._authentication is None:
                raise NotAuthenticatedError("Cannot fetch user info before authentication")

            params, store = self._require_init()
            user_info = await self.token_client.fetch_user_info(
                params.userinfo_endpoint, self._authentication.access_token
            )
            store.save_user_info(user_info)
            self._user_info = user_info
            return user_info

    async def close(self) -> None:
        """Cancel any pending refresh and release the HTTP client."""
        await self._scheduler.aclose()
        await self.token_client.close()

    def _require_init(self) -> tuple[AuthParams, FlowStateStore]:
        if self.params is None or self._store is None:
            raise ConfigurationError("Params not set, please call init first.")
        return self.params, self._store

    def _restore(self, params: AuthParams, store: FlowStateStore) -> bool:
        authentication = store.get_authentication()
        if authentication is None:
            return False

        user_info = store.get_user_info()
        if params.fetch_user_info and user_info is None:
            return False

        logger.debug("Restored authentication from storage")
        self._authentication = authentication
        self._user_info = user_info
        return True

    def _handle_error_callback(
        self, store: FlowStateStore, callback: AuthorizationResponse
    ) -> None:
        logger.warning(
            f"Authorization callback contained error: {callback.error} - "
            f"{callback.error_description}"
        )
        self._clear_authentication(store)

        with self._restoring_origin(store, store.get_flow()):
            raise ProviderError(callback.error, callback.error_description)

    async def _exchange_code(
        self,
        params: AuthParams,
        store: FlowStateStore,
        callback: AuthorizationResponse,
    ) -> None:
        flow = store.get_flow()
        if flow is None:
            self._clear_authentication(store)
            raise MissingFlowStateError()

        try:
            validate_state(flow.state, callback.state, required=params.require_state)
        except StateMismatchError:
            self._clear_authentication(store)
            with self._restoring_origin(store, flow):
                raise

        token_response = await self.token_client.exchange_code(
            TokenRequest(
                token_endpoint=params.token_endpoint,
                code=callback.code,
                code_verifier=flow.pkce.verifier,
            )
        )

        with self._restoring_origin(store, flow):
            if token_response.is_error():
                self._clear_authentication(store)
                raise ProviderError(token_response.error, token_response.error_description)

            authentication = token_response.to_authentication()

            user_info = self._user_info or store.get_user_info()
            if params.fetch_user_info and user_info is None:
                user_info = await self.token_client.fetch_user_info(
                    params.userinfo_endpoint, authentication.access_token
                )

            store.complete(authentication, user_info)
            self._authentication = authentication
            self._user_info = user_info
            self._origin_uri = flow.origin_uri

        logger.info("Authorization code exchanged for tokens")
        self._scheduler.arm(authentication.expires_in)

    def _start_redirect(self, params: AuthParams, store: FlowStateStore) -> None:
        self._scheduler.cancel()
        flow = FlowState(
            state=self.random_string(params.state_length),
            nonce=self.random_string(params.state_length),
            pkce=self.pkce_generator.create(),
            origin_uri=self.navigator.current_url(),
        )
        store.save_flow(flow)

        request = AuthorizationRequest(
            authorization_endpoint=params.authorization_endpoint,
            client_id=params.client_id,
            redirect_uri=flow.origin_uri,
            state=flow.state,
            nonce=flow.nonce,
            scope=params.scope,
            code_challenge=flow.pkce.challenge,
            code_challenge_method="S256" if params.send_challenge_method else None,
        )

        logger.info(f"Redirecting to {params.authorization_endpoint}")
        self.navigator.assign(request.build_authorization_url())

    async def _refresh(self) -> AuthenticationResult:
        """Replace the current tokens using the refresh token.

        Runs from the scheduler's background task. The profile is not
        refetched and the flow record in storage is not touched. The location
        goes back to the origin recorded by the last code exchange.
        """
        async with self._lock:
            params, store = self._require_init()
            current = self._authentication
            if current is None or not current.refresh_token:
                raise NotAuthenticatedError("No refresh token available")

            token_response = await self.token_client.refresh(
                RefreshTokenRequest(
                    token_endpoint=params.token_endpoint,
                    refresh_token=current.refresh_token,
                )
            )
            if token_response.is_error():
                self._clear_authentication(store)
                raise ProviderError(token_response.error, token_response.error_description)

            authentication = token_response.to_authentication(previous=current)
            store.save_authentication(authentication)
            self._authentication = authentication
            if self._origin_uri is not None:
                self.navigator.replace(self._origin_uri)

            logger.info("Access token refreshed")
            return authentication

    def _clear_authentication(self, store: FlowStateStore) -> None:
        self._scheduler.cancel()
        self._authentication = None
        self._origin_uri = None
        store.clear_authentication()

    @contextmanager
    def _restoring_origin(
        self, store: FlowStateStore, flow: FlowState | None
    ) -> Iterator[None]:
        """Consume ``flow`` and put its origin back in the location bar on exit.

        Runs whether the block succeeds or raises.
        """
        try:
            yield
        finally:
            if flow is not None:
                store.clear_flow()
                self.navigator.replace(flow.origin_uri)
