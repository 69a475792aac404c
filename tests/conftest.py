from __future__ import annotations

import pytest

from tests.mockserver import FakeRedis, mock_server


@pytest.fixture(
    params=[
        pytest.param(("asyncio", {}), id="asyncio"),
        pytest.param(("trio", {}), id="trio"),
    ]
)
def anyio_backend(request):
    return request.param


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def redis_server(anyio_backend, fake_redis):
    async with mock_server(fake_redis) as server:
        yield server
