from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from tests.helpers import EndpointRecorder


@pytest.fixture
def recorder() -> EndpointRecorder:
    return EndpointRecorder()


@pytest_asyncio.fixture
async def http_client(recorder: EndpointRecorder) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with recorder.client() as client:
        yield client
