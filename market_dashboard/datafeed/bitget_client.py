"""
Bitget public market data client with async orchestration.

Handles:
1. REST fetches for the spot symbol listing, spot tickers and futures tickers
2. Fixed-interval REST polls exposed as async generators
3. Public WebSocket subscriptions for the `ticker` and `books` channels

Notes:
- Uses orjson for JSON parsing
- Every boundary failure is raised as a MarketDataError subclass; the polls
  and the subscription tasks catch them and skip the cycle
- All I/O is non-blocking (pure asyncio)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional

import aiohttp
import orjson

from ..config import DashboardConfig
from ..engine.formatting import to_float
from ..errors import FetchError, MarketDataError, PayloadError
from ..types import FuturesRow, OrderBookSnapshot, Symbol, TickerSnapshot
from .orderbook import book_from_message

logger = logging.getLogger(__name__)

# REST paths (v2 public market data)
SYMBOLS_PATH = "/api/v2/spot/public/symbols"
SPOT_TICKERS_PATH = "/api/v2/spot/market/tickers"
FUTURES_TICKERS_PATH = "/api/v2/mix/market/tickers"

TICKER_CHANNEL = "ticker"
BOOKS_CHANNEL = "books"

# TickerSnapshot field -> payload keys. REST and WS spell some fields
# differently; the first alias present wins.
TICKER_ALIASES: dict[str, tuple[str, ...]] = {
    "last_price": ("lastPr", "last", "close"),
    "open_24h": ("open24h", "open"),
    "high_24h": ("high24h",),
    "low_24h": ("low24h",),
    "base_volume_24h": ("baseVolume", "baseVol"),
    "quote_volume_24h": ("quoteVolume", "quoteVol"),
}


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key present and not None."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _require_dict(entry: Any) -> Mapping[str, Any]:
    if not isinstance(entry, dict):
        raise PayloadError(f"expected object, got {type(entry).__name__}")
    return entry


def ticker_fields(raw: Mapping[str, Any]) -> dict[str, float]:
    """
    Numeric ticker fields present in a payload entry.

    Fields that are missing or unparseable are left out, so merging the
    result never erases a known value.
    """
    fields: dict[str, float] = {}
    for name, aliases in TICKER_ALIASES.items():
        value = to_float(_first(raw, *aliases))
        if value is not None:
            fields[name] = value
    return fields


def parse_ticker(raw: Any) -> Optional[TickerSnapshot]:
    """REST spot ticker entry -> TickerSnapshot. None if it names no symbol."""
    entry = _require_dict(raw)
    symbol = _first(entry, "symbol", "instId")
    if not symbol:
        return None
    return TickerSnapshot(symbol=str(symbol), **ticker_fields(entry))


def parse_symbol(raw: Any) -> Optional[Symbol]:
    entry = _require_dict(raw)
    symbol = entry.get("symbol")
    if not symbol:
        return None
    return Symbol(
        symbol=str(symbol),
        base_coin=str(entry.get("baseCoin", "")),
        quote_coin=str(entry.get("quoteCoin", "")),
        min_trade_amount=str(entry.get("minTradeAmount", "")),
        maker_fee_rate=str(entry.get("makerFeeRate", "")),
        taker_fee_rate=str(entry.get("takerFeeRate", "")),
    )


def parse_futures_row(raw: Any) -> Optional[FuturesRow]:
    entry = _require_dict(raw)
    inst_id = _first(entry, "instId", "symbol")
    if not inst_id:
        return None
    return FuturesRow(
        inst_id=str(inst_id),
        last_price=to_float(_first(entry, "lastPr", "last")),
        change_24h=to_float(entry.get("change24h")),
        quote_volume_24h=to_float(_first(entry, "quoteVol24h", "quoteVolume", "usdtVolume")),
    )


class BitgetClient:
    """
    Async Bitget public API client.

    Usage:
        async with BitgetClient(config) as client:
            symbols = await client.list_symbols()
            async for tickers in client.poll_tickers():
                ...
            async for symbol, fields in client.subscribe_ticker("BTCUSDT"):
                ...
    """

    def __init__(
        self,
        config: Optional[DashboardConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.config = config or DashboardConfig()
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> BitgetClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.request_timeout_sec)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    # ---- REST -------------------------------------------------------------

    async def _get_data(self, path: str, params: Optional[dict[str, str]] = None) -> list[Any]:
        """GET a public endpoint and return the `data` array of its envelope."""
        session = await self._get_session()
        url = f"{self.config.rest_base}{path}"
        try:
            async with session.get(url, params=params) as resp:
                resp.raise_for_status()
                raw = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"GET {path} failed: {e!r}") from e

        try:
            body = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise PayloadError(f"GET {path}: invalid JSON") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise PayloadError(f"GET {path}: envelope has no data array")
        return data

    async def list_symbols(self) -> list[Symbol]:
        """
        Spot symbols quoted in the configured quote coin.

        Failure yields an empty list; the dashboard keeps running without a listing.
        """
        try:
            data = await self._get_data(SYMBOLS_PATH)
            symbols = [s for s in map(parse_symbol, data) if s is not None]
        except MarketDataError as e:
            logger.warning("Symbol listing failed: %s", e)
            return []
        quote = self.config.quote_coin
        return [s for s in symbols if s.quote_coin == quote]

    async def fetch_tickers(self) -> list[TickerSnapshot]:
        data = await self._get_data(SPOT_TICKERS_PATH)
        return [t for t in map(parse_ticker, data) if t is not None]

    async def fetch_futures(self) -> list[FuturesRow]:
        data = await self._get_data(
            FUTURES_TICKERS_PATH,
            params={"productType": self.config.futures_product_type},
        )
        return [r for r in map(parse_futures_row, data) if r is not None]

    async def _poll(
        self,
        name: str,
        fetch: Callable[[], Awaitable[list[Any]]],
        interval_sec: float,
    ) -> AsyncIterator[list[Any]]:
        """Fetch now, then every interval. A failed fetch yields nothing that cycle."""
        while True:
            try:
                items = await fetch()
            except MarketDataError as e:
                logger.warning("%s poll failed, keeping previous data: %s", name, e)
            else:
                yield items
            await asyncio.sleep(interval_sec)

    def poll_tickers(self, interval_sec: Optional[float] = None) -> AsyncIterator[list[TickerSnapshot]]:
        """Infinite spot ticker poll. Each call starts a fresh poll."""
        interval = self.config.ticker_interval_sec if interval_sec is None else interval_sec
        return self._poll("Spot tickers", self.fetch_tickers, interval)

    def poll_futures(self, interval_sec: Optional[float] = None) -> AsyncIterator[list[FuturesRow]]:
        """Infinite futures ticker poll. Each call starts a fresh poll."""
        interval = self.config.futures_interval_sec if interval_sec is None else interval_sec
        return self._poll("Futures tickers", self.fetch_futures, interval)

    # ---- WebSocket --------------------------------------------------------

    @staticmethod
    def subscribe_message(channel: str, symbol: str) -> str:
        return orjson.dumps({
            "op": "subscribe",
            "args": [{"instType": "SPOT", "channel": channel, "instId": symbol}],
        }).decode()

    @staticmethod
    def decode_message(channel: str, symbol: str, raw: str) -> list[tuple[str, dict]]:
        """
        Split one stream frame into (instrument, data entry) pairs.

        Event frames (subscribe acks, errors) and malformed frames give [].
        The instrument comes from the frame's `arg`, falling back to the
        subscribed symbol.
        """
        try:
            msg = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.debug("Dropping non-JSON %s frame: %.80s", channel, raw)
            return []
        if not isinstance(msg, dict):
            logger.debug("Dropping %s frame with unexpected shape", channel)
            return []

        event = msg.get("event")
        if event is not None:
            if event == "error":
                logger.warning("%s subscription error for %s: %s", channel, symbol, msg.get("msg"))
            return []

        arg = msg.get("arg") if isinstance(msg.get("arg"), dict) else {}
        if arg.get("channel", channel) != channel:
            return []
        inst = str(arg.get("instId") or symbol)

        data = msg.get("data")
        if not isinstance(data, list):
            logger.debug("Dropping %s frame without data array", channel)
            return []
        return [(inst, entry) for entry in data if isinstance(entry, dict)]

    async def _keepalive(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Bitget drops connections that send nothing for 2 minutes."""
        try:
            while not ws.closed:
                await asyncio.sleep(self.config.ws_ping_interval_sec)
                await ws.send_str("ping")
        except (ConnectionResetError, aiohttp.ClientError) as e:
            logger.debug("Keepalive stopped: %r", e)

    async def _stream(
        self,
        channel: str,
        symbol: str,
        on_subscribed: Optional[Callable[[], None]] = None,
    ) -> AsyncIterator[tuple[str, dict]]:
        """Open one connection, subscribe one channel, yield its data entries."""
        session = await self._get_session()
        try:
            async with session.ws_connect(self.config.ws_url) as ws:
                await ws.send_str(self.subscribe_message(channel, symbol))
                logger.info("WS %s subscribed: %s", channel, symbol)
                if on_subscribed is not None:
                    on_subscribed()

                pinger = asyncio.create_task(self._keepalive(ws))
                try:
                    async for msg in ws:
                        if msg.type == aiohttp.WSMsgType.TEXT:
                            if msg.data == "pong":
                                continue
                            for item in self.decode_message(channel, symbol, msg.data):
                                yield item
                        elif msg.type == aiohttp.WSMsgType.ERROR:
                            raise FetchError(f"WS {channel} error: {ws.exception()!r}")
                finally:
                    pinger.cancel()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"WS {channel} connection failed: {e!r}") from e
        logger.info("WS %s closed: %s", channel, symbol)

    async def subscribe_ticker(
        self,
        symbol: str,
        on_subscribed: Optional[Callable[[], None]] = None,
    ) -> AsyncIterator[tuple[str, dict[str, float]]]:
        """Stream of (instrument, partial ticker fields)."""
        async for inst, entry in self._stream(TICKER_CHANNEL, symbol, on_subscribed):
            fields = ticker_fields(entry)
            if fields:
                yield inst, fields
            else:
                logger.debug("Dropping ticker entry without fields for %s", inst)

    async def subscribe_order_book(
        self,
        symbol: str,
        on_subscribed: Optional[Callable[[], None]] = None,
    ) -> AsyncIterator[OrderBookSnapshot]:
        """Stream of full book snapshots; each one replaces the last."""
        async for inst, entry in self._stream(BOOKS_CHANNEL, symbol, on_subscribed):
            try:
                book = book_from_message(inst, entry)
            except PayloadError as e:
                logger.debug("Dropping malformed book for %s: %s", inst, e)
                continue
            if book is not None:
                yield book
