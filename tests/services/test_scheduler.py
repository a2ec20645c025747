from unittest.mock import AsyncMock

import pytest

from authlogic.models.errors import ProviderError
from authlogic.models.tokens import AuthenticationResult
from authlogic.services.scheduler import TokenRefreshScheduler
from tests.conftest import yield_to_event_loop


def authentication(access_token: str, expires_in: int | None = 7200) -> AuthenticationResult:
    return AuthenticationResult(
        access_token=access_token, refresh_token="refresh-token", expires_in=expires_in
    )


class TestTokenRefreshScheduler:
    @pytest.fixture(autouse=True)
    def setup_scheduler(self, clock):
        self.clock = clock
        self.refresh = AsyncMock(return_value=authentication("access-token-2"))
        self.scheduler = TokenRefreshScheduler(self.refresh, sleep=clock.sleep)

    @pytest.fixture(autouse=True)
    async def teardown_scheduler(self):
        yield
        if hasattr(self, "scheduler"):
            await self.scheduler.aclose()

    async def test_fires_margin_seconds_before_expiry(self):
        # Act
        self.scheduler.arm(7200)
        await self.clock.advance(7169)

        # Assert
        self.refresh.assert_not_awaited()
        await self.clock.advance(1)
        self.refresh.assert_awaited_once()
        assert self.clock.delays[0] == 7170

    async def test_rearms_for_new_expiry(self):
        # Arrange
        self.refresh.return_value = authentication("access-token-2", expires_in=600)

        # Act
        self.scheduler.arm(7200)
        await self.clock.advance(7170)
        await self.clock.advance(570)

        # Assert
        assert self.refresh.await_count == 2
        assert self.clock.delays[:3] == [7170, 570, 570]
        assert self.scheduler.running

    async def test_short_lifetime_refreshes_immediately(self):
        self.scheduler.arm(10)
        await self.clock.advance(0)

        self.refresh.assert_awaited()
        assert self.clock.delays[0] == 0

    async def test_not_armed_without_expiry(self):
        self.scheduler.arm(None)

        assert not self.scheduler.running

    async def test_stops_at_limit(self):
        # Arrange
        self.scheduler.limit = 2

        # Act
        self.scheduler.arm(7200)
        for _ in range(4):
            await self.clock.advance(7170)

        # Assert
        assert self.refresh.await_count == 2
        assert not self.scheduler.running

    async def test_arm_resets_attempts(self):
        # Arrange
        self.scheduler.limit = 1
        self.scheduler.arm(7200)
        await self.clock.advance(7170)
        assert self.scheduler.attempts == 1

        # Act
        self.scheduler.arm(7200)

        # Assert
        assert self.scheduler.attempts == 0
        await self.clock.advance(7170)
        assert self.refresh.await_count == 2

    async def test_failure_is_reported_and_stops_loop(self):
        # Arrange
        error = ProviderError("invalid_grant", "Refresh token revoked")
        self.refresh.side_effect = error
        on_error = AsyncMock()
        self.scheduler.on_error(on_error)

        # Act
        self.scheduler.arm(7200)
        await self.clock.advance(7170)

        # Assert
        on_error.assert_awaited_once_with(error)
        assert not self.scheduler.running

    async def test_failing_error_callback_is_contained(self):
        # Arrange
        self.refresh.side_effect = RuntimeError("boom")
        self.scheduler.on_error(AsyncMock(side_effect=ValueError("callback broke")))

        # Act
        self.scheduler.arm(7200)
        await self.clock.advance(7170)

        # Assert
        assert not self.scheduler.running

    async def test_cancel_prevents_refresh(self):
        # Act
        self.scheduler.arm(7200)
        await yield_to_event_loop()
        self.scheduler.cancel()
        await self.clock.advance(7200)

        # Assert
        self.refresh.assert_not_awaited()
        assert not self.scheduler.running

    async def test_arm_replaces_pending_refresh(self):
        # Act
        self.scheduler.arm(7200)
        await yield_to_event_loop()
        self.scheduler.arm(3600)
        await self.clock.advance(7170)

        # Assert
        self.refresh.assert_awaited_once()
