"""Shared pytest fixtures for the vton_proxy test suite."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from vton_proxy.core.config import ProxyConfig

RUNPOD_SUBMIT_URL = "https://api.runpod.ai/v2/vton-endpoint/run"
RUNPOD_BASE_URL = "https://api.runpod.ai/v2/vton-endpoint"

# Smallest payload that still looks like a JPEG to a human reader.
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64 + b"\xff\xd9"

Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Deterministic monotonic clock; ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture()
def proxy_config() -> ProxyConfig:
    """Fully configured proxy (backend + ImgBB key, default host chain)."""
    return ProxyConfig(
        runpod_api_key="rp-test-key",
        runpod_api_url=RUNPOD_SUBMIT_URL,
        imgbb_api_key="bb-test-key",
    )


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return JPEG_BYTES


# ---------------------------------------------------------------------------
# Outbound HTTP
# ---------------------------------------------------------------------------


def mock_client(handler: Handler) -> httpx.AsyncClient:
    """Return an ``AsyncClient`` whose requests are answered by *handler*."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture()
def make_client() -> Callable[[Handler], httpx.AsyncClient]:
    return mock_client
