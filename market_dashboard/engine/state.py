"""
Dashboard view state.

Reconciles the periodic REST ticker snapshot with the ticker stream for the
selected instrument, and holds the order book for that instrument.

Thread-safety: NOT thread-safe. The feed controller is the only writer.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, Optional, Sequence

from ..datafeed.orderbook import OrderBook
from ..types import (
    DashboardSnapshot,
    FuturesRow,
    NewsItem,
    OrderBookSnapshot,
    Symbol,
    TickerSnapshot,
)
from .rows import rank_futures

logger = logging.getLogger(__name__)

# Fields a stream update is allowed to patch
TICKER_FIELDS = frozenset(TickerSnapshot._fields) - {"symbol"}


def merge_ticker(
    prev: Optional[TickerSnapshot],
    symbol: str,
    fields: Mapping[str, Any],
) -> TickerSnapshot:
    """
    Overwrite snapshot fields with the ones present in `fields`.

    A field is absent when it is missing or None; absent fields keep the
    previous value. Zero is a value.
    """
    base = prev if prev is not None else TickerSnapshot(symbol=symbol)
    present = {
        k: v for k, v in fields.items()
        if k in TICKER_FIELDS and v is not None
    }
    return base._replace(**present) if present else base


class DashboardState:
    """Single-writer state behind every DashboardSnapshot."""

    def __init__(self, selected: str, futures_limit: int = 10) -> None:
        self.selected = selected
        self.futures_limit = futures_limit

        self.symbols: list[Symbol] = []
        self.tickers: list[TickerSnapshot] = []
        self.spot: Optional[TickerSnapshot] = None
        self.book = OrderBook(selected)
        self.futures: list[FuturesRow] = []
        self.news: list[NewsItem] = []

    # ---- REST collections -------------------------------------------------

    def set_symbols(self, symbols: Sequence[Symbol]) -> None:
        self.symbols = list(symbols)

    def set_tickers(self, tickers: Sequence[TickerSnapshot]) -> None:
        """Replace the whole ticker collection and re-resolve the spot ticker."""
        self.tickers = list(tickers)
        self._resolve_spot()

    def set_futures(self, rows: Sequence[FuturesRow]) -> None:
        self.futures = list(rows)

    def set_news(self, items: Sequence[NewsItem]) -> None:
        self.news = list(items)

    def _resolve_spot(self) -> None:
        self.spot = next((t for t in self.tickers if t.symbol == self.selected), None)

    # ---- Selection --------------------------------------------------------

    def select(self, symbol: str) -> bool:
        """
        Switch the selected instrument.

        Clears the book immediately so the old book is never shown under the
        new label. Returns False if `symbol` is already selected.
        """
        if symbol == self.selected:
            return False
        logger.info("Selection %s -> %s", self.selected, symbol)
        self.selected = symbol
        self.book.clear(symbol)
        self._resolve_spot()
        return True

    # ---- Stream updates ---------------------------------------------------

    def apply_ticker_update(self, symbol: str, fields: Mapping[str, Any]) -> bool:
        """Merge a partial ticker. Ignored unless it is for the selected instrument."""
        if symbol != self.selected:
            logger.debug("Ignoring ticker for %s (selected %s)", symbol, self.selected)
            return False
        self.spot = merge_ticker(self.spot, symbol, fields)
        return True

    def apply_order_book(self, book: OrderBookSnapshot) -> bool:
        """Replace the book. Ignored unless it is for the selected instrument."""
        if book.symbol != self.selected:
            logger.debug("Ignoring book for %s (selected %s)", book.symbol, self.selected)
            return False
        self.book.replace(book)
        return True

    # ---- Output -----------------------------------------------------------

    def snapshot(self) -> DashboardSnapshot:
        return DashboardSnapshot(
            selected=self.selected,
            symbols=list(self.symbols),
            tickers=list(self.tickers),
            spot=self.spot,
            book=self.book.to_snapshot(),
            futures=rank_futures(self.futures, self.futures_limit),
            news=list(self.news),
            timestamp_ms=int(time.time() * 1000),
        )
