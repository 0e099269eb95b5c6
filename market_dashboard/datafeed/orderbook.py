"""
Local order book for the selected Bitget spot instrument.

The public `books` channel is consumed as full snapshots: every message
replaces the whole book. There is no sequence-number or gap detection, so a
dropped or reordered frame is only corrected by the next one. This mirrors
what the upstream integration offers; callers must not assume more.

Levels are kept as parsed lists in exchange order (best first).
"""

from __future__ import annotations

import time
from typing import Any, Optional

from ..errors import PayloadError
from ..types import BookLevel, OrderBookSnapshot


def parse_levels(raw: Any) -> list[BookLevel]:
    """
    Parse [[price, size, ...], ...] as sent by Bitget.

    Raises PayloadError on anything else.
    """
    if not isinstance(raw, list):
        raise PayloadError(f"book side is not a list: {type(raw).__name__}")
    levels: list[BookLevel] = []
    for entry in raw:
        try:
            price, size = float(entry[0]), float(entry[1])
        except (TypeError, ValueError, LookupError) as e:
            raise PayloadError(f"bad book level {entry!r}") from e
        levels.append(BookLevel(price, size))
    return levels


class OrderBook:
    """
    Last-message-wins order book.

    Thread-safety: NOT thread-safe. Designed for single-threaded async use.
    """

    __slots__ = ('symbol', 'bids', 'asks', 'timestamp_ms')

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        self.bids: list[BookLevel] = []  # Descending (best bid first)
        self.asks: list[BookLevel] = []  # Ascending (best ask first)
        self.timestamp_ms: int = 0

    def replace(self, snapshot: OrderBookSnapshot) -> None:
        """Replace the whole book with a stream snapshot."""
        self.symbol = snapshot.symbol
        self.bids = list(snapshot.bids)
        self.asks = list(snapshot.asks)
        self.timestamp_ms = snapshot.timestamp_ms

    def clear(self, symbol: Optional[str] = None) -> None:
        """Drop all levels, optionally relabelling the book for a new instrument."""
        if symbol is not None:
            self.symbol = symbol
        self.bids = []
        self.asks = []
        self.timestamp_ms = 0

    def to_snapshot(self) -> OrderBookSnapshot:
        return OrderBookSnapshot(
            symbol=self.symbol,
            bids=list(self.bids),
            asks=list(self.asks),
            timestamp_ms=self.timestamp_ms,
        )


def book_from_message(symbol: str, payload: Any) -> Optional[OrderBookSnapshot]:
    """
    Build a book snapshot from one `books` channel data entry.

    Returns None when the entry does not carry both sides (e.g. an ack frame).
    """
    if not isinstance(payload, dict):
        return None
    if 'bids' not in payload or 'asks' not in payload:
        return None
    ts = payload.get('ts')
    try:
        timestamp_ms = int(ts) if ts is not None else int(time.time() * 1000)
    except (TypeError, ValueError, OverflowError) as e:
        raise PayloadError(f"bad book timestamp {ts!r}") from e
    return OrderBookSnapshot(
        symbol=symbol,
        bids=parse_levels(payload['bids']),
        asks=parse_levels(payload['asks']),
        timestamp_ms=timestamp_ms,
    )
