"""Shared fixtures and network fakes for dashboard tests."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import aiohttp
import orjson
import pytest

from market_dashboard.config import DashboardConfig
from market_dashboard.types import (
    BookLevel,
    FuturesRow,
    OrderBookSnapshot,
    Symbol,
    TickerSnapshot,
)


async def settle(rounds: int = 10) -> None:
    """Let freshly created tasks run up to their next real await."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def envelope(data: Any) -> bytes:
    return orjson.dumps({"code": "00000", "msg": "success", "data": data})


# ---- aiohttp session fakes ------------------------------------------------


class FakeResponse:
    def __init__(self, body: bytes | str, status: int = 200) -> None:
        self._body = body.encode() if isinstance(body, str) else body
        self.status = status

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=None, history=(), status=self.status, message="error",
            )

    async def read(self) -> bytes:
        return self._body

    async def text(self) -> str:
        return self._body.decode()


class _RequestContext:
    def __init__(self, outcome: FakeResponse | Exception) -> None:
        self._outcome = outcome

    async def __aenter__(self) -> FakeResponse:
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome

    async def __aexit__(self, *exc_info: object) -> None:
        return None


class FakeWebSocket:
    """Replays TEXT frames, records what the client sends."""

    def __init__(self, frames: list[str]) -> None:
        self._frames = frames
        self.sent: list[str] = []
        self.closed = False

    async def send_str(self, data: str) -> None:
        self.sent.append(data)

    def exception(self) -> Optional[BaseException]:
        return None

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for frame in self._frames:
            yield aiohttp.WSMessage(aiohttp.WSMsgType.TEXT, frame, None)
        self.closed = True


class _WSContext:
    def __init__(self, ws: FakeWebSocket) -> None:
        self._ws = ws

    async def __aenter__(self) -> FakeWebSocket:
        return self._ws

    async def __aexit__(self, *exc_info: object) -> None:
        self._ws.closed = True


class FakeSession:
    """
    Stand-in for aiohttp.ClientSession.

    `responses` are consumed in order by get(); `sockets` by ws_connect().
    """

    def __init__(
        self,
        responses: Optional[list[FakeResponse | Exception]] = None,
        sockets: Optional[list[FakeWebSocket]] = None,
    ) -> None:
        self.responses = list(responses or [])
        self.sockets = list(sockets or [])
        self.requests: list[tuple[str, Optional[dict]]] = []
        self.ws_urls: list[str] = []

    def get(self, url: str, params: Optional[dict] = None, **kwargs: Any) -> _RequestContext:
        self.requests.append((url, params))
        return _RequestContext(self.responses.pop(0))

    def ws_connect(self, url: str, **kwargs: Any) -> _WSContext:
        self.ws_urls.append(url)
        return _WSContext(self.sockets.pop(0))

    async def close(self) -> None:
        return None


# ---- Client fake for the feed ---------------------------------------------


class FakeClient:
    """
    Stand-in for BitgetClient.

    Streams are driven from tests by pushing into per-(channel, symbol)
    queues; `events` records open/close order.
    """

    def __init__(self, config: DashboardConfig, symbols: Optional[list[Symbol]] = None) -> None:
        self.config = config
        self.symbols = symbols or []
        self.ticker_batches: list[list[TickerSnapshot]] = []
        self.futures_batches: list[list[FuturesRow]] = []
        self.queues: dict[tuple[str, str], asyncio.Queue] = {}
        self.events: list[tuple[str, str, str]] = []

    async def list_symbols(self) -> list[Symbol]:
        return list(self.symbols)

    async def _replay(self, batches: list[list[Any]]):
        for batch in batches:
            yield batch
        await asyncio.Event().wait()

    def poll_tickers(self, interval_sec: Optional[float] = None):
        return self._replay(self.ticker_batches)

    def poll_futures(self, interval_sec: Optional[float] = None):
        return self._replay(self.futures_batches)

    async def _channel(self, channel: str, symbol: str, on_subscribed):
        queue: asyncio.Queue = asyncio.Queue()
        self.queues[(channel, symbol)] = queue
        self.events.append(("open", channel, symbol))
        on_subscribed()
        try:
            while True:
                yield await queue.get()
        finally:
            self.events.append(("close", channel, symbol))

    def subscribe_ticker(self, symbol: str, on_subscribed=None):
        return self._channel("ticker", symbol, on_subscribed or (lambda: None))

    def subscribe_order_book(self, symbol: str, on_subscribed=None):
        return self._channel("books", symbol, on_subscribed or (lambda: None))


# ---- Fixtures -------------------------------------------------------------


@pytest.fixture
def config() -> DashboardConfig:
    return DashboardConfig(
        symbol="BTCUSDT",
        ticker_interval_sec=0,
        futures_interval_sec=0,
        ws_ping_interval_sec=3600,
    )


@pytest.fixture
def btc_ticker() -> TickerSnapshot:
    return TickerSnapshot(
        symbol="BTCUSDT",
        last_price=64000.0,
        open_24h=62000.0,
        high_24h=65000.0,
        low_24h=61000.0,
        base_volume_24h=1200.0,
        quote_volume_24h=76_800_000.0,
    )


@pytest.fixture
def btc_book() -> OrderBookSnapshot:
    return OrderBookSnapshot(
        symbol="BTCUSDT",
        bids=[BookLevel(63999.5, 1.2), BookLevel(63999.0, 0.4)],
        asks=[BookLevel(64000.5, 0.8), BookLevel(64001.0, 2.4)],
        timestamp_ms=1_700_000_000_000,
    )


@pytest.fixture
def symbols() -> list[Symbol]:
    return [
        Symbol("BTCUSDT", "BTC", "USDT", "0.0001", "0.001", "0.001"),
        Symbol("ETHUSDT", "ETH", "USDT", "0.001", "0.001", "0.001"),
    ]
