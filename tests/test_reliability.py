"""Unit tests for core/reliability.py retry logic."""

from unittest.mock import AsyncMock, patch

import pytest

from core.errors import SourceUnavailableError
from core.reliability import TransientError, _calculate_delay, resilient_call


class TestResilientCall:
    """Test suite for resilient_call."""

    @pytest.mark.asyncio
    async def test_retries_transient_then_succeeds(self):
        func = AsyncMock(side_effect=[TransientError("502"), "ok"])
        with patch("core.reliability.asyncio.sleep", AsyncMock()) as sleep:
            result = await resilient_call(func, "url", max_retries=2)

        assert result == "ok"
        assert func.await_count == 2
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reraises_after_last_attempt(self):
        func = AsyncMock(side_effect=TransientError("timed out"))
        with patch("core.reliability.asyncio.sleep", AsyncMock()):
            with pytest.raises(TransientError):
                await resilient_call(func, max_retries=1)

        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_permanent_failure_not_retried(self):
        func = AsyncMock(side_effect=SourceUnavailableError("404"))
        with pytest.raises(SourceUnavailableError):
            await resilient_call(func, max_retries=3)

        assert func.await_count == 1


class TestCalculateDelay:
    """Test suite for backoff delays."""

    def test_exponential_with_cap(self):
        assert 0.5 <= _calculate_delay(0, 0.5) <= 0.55
        assert 2.0 <= _calculate_delay(2, 0.5) <= 2.2
        assert 10.0 <= _calculate_delay(10, 0.5) <= 11.0
