"""
Data types for the market dashboard.

Notes:
- Using NamedTuple for immutable, memory-efficient structures
- These are the UI-facing data structures; the feed builds a fresh
  DashboardSnapshot for every push instead of sharing mutable state
- Numeric fields are None when the upstream payload did not carry them
"""

from __future__ import annotations

from typing import NamedTuple, Optional


class Symbol(NamedTuple):
    """Spot trading pair from the public symbol listing."""
    symbol: str
    base_coin: str
    quote_coin: str
    min_trade_amount: str
    maker_fee_rate: str
    taker_fee_rate: str


class TickerSnapshot(NamedTuple):
    """
    Most recently known 24h ticker for one instrument.

    Built from a REST poll, then patched field-by-field by the ticker stream.
    """
    symbol: str
    last_price: Optional[float] = None
    open_24h: Optional[float] = None
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None
    base_volume_24h: Optional[float] = None
    quote_volume_24h: Optional[float] = None


class BookLevel(NamedTuple):
    """Single price level from the order book."""
    price: float
    size: float


class OrderBookSnapshot(NamedTuple):
    """
    Full order book for one instrument.

    Every stream message replaces the whole book (last message wins).
    """
    symbol: str
    bids: list[BookLevel]  # Best (highest) bid first
    asks: list[BookLevel]  # Best (lowest) ask first
    timestamp_ms: int


class FuturesRow(NamedTuple):
    """USDT-margined perpetual ticker row."""
    inst_id: str
    last_price: Optional[float]
    change_24h: Optional[float]
    quote_volume_24h: Optional[float]


class NewsItem(NamedTuple):
    title: str
    link: str
    published_at: str = ""


class DashboardSnapshot(NamedTuple):
    """
    Complete dashboard state for UI rendering.

    Pushed to the UI queue whenever the feed changes something.
    """
    selected: str
    symbols: list[Symbol]
    tickers: list[TickerSnapshot]
    spot: Optional[TickerSnapshot]
    book: OrderBookSnapshot
    futures: list[FuturesRow]  # Already ranked by 24h quote volume
    news: list[NewsItem]
    timestamp_ms: int
    channels: tuple[tuple[str, str], ...] = ()  # (channel, state) per stream
