import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from authlogic.config import AuthParams
from authlogic.models.security import PkceChallenge
from authlogic.primitives.navigation import InMemoryNavigator
from authlogic.primitives.pkce import PkceChallengeGenerator
from authlogic.primitives.storage import MemoryStorage
from authlogic.secure import AuthorizationFlowEngine
from authlogic.services.tokens import OAuth2TokenClient
from tests.conftest import FakeClock, json_response

FLOW_KEY = "authlogic.storage.flow"
AUTH_KEY = "authlogic.storage.auth"
USERINFO_KEY = "authlogic.storage.userinfo"

ISSUER = "test-issuer"
CLIENT_ID = "test-client-id"
SCOPE = "test-scope"

VERIFIER = "test-verifier"
CHALLENGE = "test-challenge"
CODE = "test-code"
STATE = "test-state"
NONCE = "test-nonce"

THIS_URI = "http://test-uri"
ACCESS_TOKEN = "test-access-token"
ACCESS_TOKEN_2 = "test-access-token-2"
REFRESH_TOKEN = "test-refresh-token"
ID_TOKEN = "test-id-token"
EXPIRES_IN = 7200

AUTHENTICATION = {
    "accessToken": ACCESS_TOKEN,
    "refreshToken": REFRESH_TOKEN,
    "idToken": ID_TOKEN,
    "expiresIn": EXPIRES_IN,
}
USERINFO = {"sub": "test-sub", "lastName": "test-lastname"}
STORED_FLOW = {
    "nonce": NONCE,
    "state": STATE,
    "pkce": {"verifier": VERIFIER, "challenge": CHALLENGE},
    "originUri": THIS_URI,
}


def token_success(access_token: str = ACCESS_TOKEN) -> MagicMock:
    return json_response(
        {
            "access_token": access_token,
            "id_token": ID_TOKEN,
            "expires_in": EXPIRES_IN,
            "refresh_token": REFRESH_TOKEN,
            "token_type": "bearer",
        }
    )


class EngineTest:
    """Engine wired to in-memory collaborators and a mocked HTTP client."""

    @pytest.fixture(autouse=True)
    def setup_fixtures(self):
        self.clock = FakeClock()
        backing = MemoryStorage()
        self.storage = MagicMock(wraps=backing)
        self.items = backing.items
        self.navigator = InMemoryNavigator("http://app.example.com/")
        self.pkce_generator = MagicMock(spec=PkceChallengeGenerator)
        self.pkce_generator.create.return_value = PkceChallenge(
            verifier=VERIFIER, challenge=CHALLENGE
        )
        self.token_client = OAuth2TokenClient()
        self.token_client._http_client = AsyncMock()
        self.http = self.token_client._http_client

        self.engine = AuthorizationFlowEngine(
            pkce_generator=self.pkce_generator,
            storage=self.storage,
            navigator=self.navigator,
            token_client=self.token_client,
            random_string=lambda length: f"stub-{length}",
            sleep=self.clock.sleep,
        )

    @pytest.fixture(autouse=True)
    async def teardown_engine(self):
        yield
        if hasattr(self, "engine"):
            await self.engine.close()

    def init(self, **overrides) -> None:
        values = {"issuer": ISSUER, "client_id": CLIENT_ID, "scope": SCOPE}
        values.update(overrides)
        self.engine.init(AuthParams(**values))

    def store_json(self, key: str, value: dict) -> None:
        self.items[key] = json.dumps(value)

    def stored_json(self, key: str) -> dict | None:
        raw = self.items.get(key)
        return json.loads(raw) if raw is not None else None

    def set_location(self, url: str) -> None:
        self.navigator.url = url
