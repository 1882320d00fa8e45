"""
Tests for retry and status helpers.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from codescan.config_loader import ResilienceConfig
from codescan.resilience import backoff_delays, notify_status, retry_async

POLICY = ResilienceConfig(retry_attempts=4, retry_base_delay=1.0, retry_max_delay=3.0, retry_backoff_factor=2.0)


def test_backoff_delays_capped():
    assert list(backoff_delays(POLICY)) == [1.0, 2.0, 3.0]


def test_single_attempt_has_no_delays():
    assert list(backoff_delays(ResilienceConfig(retry_attempts=1))) == []


def test_notify_status_swallows_observer_errors():
    callback = MagicMock(side_effect=RuntimeError("closed"))
    notify_status(callback, "Parsing review...")
    callback.assert_called_once_with("Parsing review...")
    notify_status(None, "ignored")


@pytest.mark.unit
class TestRetryAsync:

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        call = AsyncMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "ok"])
        with patch("codescan.resilience.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await retry_async(call, 1, key="v", policy=POLICY, retryable=(ConnectionError,))
        assert result == "ok"
        assert call.await_count == 3
        call.assert_awaited_with(1, key="v")
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self):
        call = AsyncMock(side_effect=ConnectionError("down"))
        with patch("codescan.resilience.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(ConnectionError, match="down"):
                await retry_async(call, attempts=2, policy=POLICY, retryable=(ConnectionError,))
        assert call.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_immediately(self):
        call = AsyncMock(side_effect=KeyError("x"))
        with pytest.raises(KeyError):
            await retry_async(call, policy=POLICY, retryable=(ConnectionError,))
        assert call.await_count == 1
