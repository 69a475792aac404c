from __future__ import annotations

import unittest.mock

import anyio
import pytest

from respmux.retry import ConstantRetryPolicy

pytestmark = pytest.mark.anyio


class TestConstantRetryPolicy:
    async def test_no_exception(self):
        call = unittest.mock.AsyncMock(return_value=1)
        assert 1 == await ConstantRetryPolicy((ZeroDivisionError,), 2, 0.01).call_with_retries(call)
        call.assert_awaited_once()

    async def test_exception(self):
        def raise_zerodiv():
            1 / 0

        call = unittest.mock.AsyncMock(side_effect=raise_zerodiv)

        with pytest.raises(ZeroDivisionError):
            await ConstantRetryPolicy((ZeroDivisionError,), 1, 0.01).call_with_retries(call)

        assert call.await_count == 2

    async def test_recovers_after_failure(self):
        call = unittest.mock.AsyncMock(side_effect=[OSError("refused"), OSError("refused"), 1])
        assert 1 == await ConstantRetryPolicy((OSError,), 2, 0).call_with_retries(call)
        assert call.await_count == 3

    async def test_non_retryable_exception(self):
        call = unittest.mock.AsyncMock(side_effect=ValueError)
        with pytest.raises(ValueError):
            await ConstantRetryPolicy((OSError,), 3, 0).call_with_retries(call)
        call.assert_awaited_once()

    async def test_delay_between_attempts(self):
        call = unittest.mock.AsyncMock(side_effect=[OSError("refused"), 1])
        start = anyio.current_time()
        assert 1 == await ConstantRetryPolicy((OSError,), 1, 0.05).call_with_retries(call)
        assert anyio.current_time() - start >= 0.04

    def test_repr(self):
        assert repr(ConstantRetryPolicy((OSError,), 1, 0)) == (
            "ConstantRetryPolicy<retries=1, retryable_exceptions=OSError>"
        )
