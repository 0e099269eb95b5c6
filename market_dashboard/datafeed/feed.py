"""
Feed controller: the one owner of the current selection.

Runs the REST polls and both stream subscriptions, writes every result into
DashboardState, and pushes a DashboardSnapshot to `snapshot_queue` after
each change. The view only reads from the queue and calls select().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from ..config import DashboardConfig
from ..engine.state import DashboardState
from ..types import DashboardSnapshot, NewsItem, OrderBookSnapshot
from .bitget_client import BitgetClient
from .news import fetch_news
from .subscription import ChannelSubscription

logger = logging.getLogger(__name__)


class DashboardFeed:
    """
    Usage:
        async with BitgetClient(config) as client:
            feed = DashboardFeed(client, config)
            await feed.start()
            ...
            await feed.select("ETHUSDT")
            ...
            await feed.stop()
    """

    def __init__(
        self,
        client: BitgetClient,
        config: Optional[DashboardConfig] = None,
        news_loader: Optional[Callable[[], Awaitable[list[NewsItem]]]] = None,
    ) -> None:
        self.config = config or client.config
        self.client = client
        self.state = DashboardState(self.config.symbol, self.config.futures_limit)
        self._news_loader = news_loader or (lambda: fetch_news(self.config))

        self.ticker_channel: ChannelSubscription[tuple[str, dict[str, float]]] = ChannelSubscription(
            "ticker", client.subscribe_ticker, self._on_ticker,
        )
        self.book_channel: ChannelSubscription[OrderBookSnapshot] = ChannelSubscription(
            "books", client.subscribe_order_book, self._on_book,
        )
        self._tasks: list[asyncio.Task[None]] = []

        # Output queue for UI; oldest snapshot is dropped when full
        self.snapshot_queue: asyncio.Queue[DashboardSnapshot] = asyncio.Queue(maxsize=5)

    # ---- Lifecycle --------------------------------------------------------

    async def start(self) -> None:
        """Kick off the listing, news, both polls and both subscriptions."""
        logger.info("Starting feed for %s", self.state.selected)
        self._publish()
        self._tasks = [
            asyncio.create_task(self._load_listing(), name="listing"),
            asyncio.create_task(self._load_news(), name="news"),
            asyncio.create_task(
                self._consume(self.client.poll_tickers(self.config.ticker_interval_sec),
                              self.state.set_tickers),
                name="poll:tickers",
            ),
            asyncio.create_task(
                self._consume(self.client.poll_futures(self.config.futures_interval_sec),
                              self.state.set_futures),
                name="poll:futures",
            ),
        ]
        await self._subscribe(self.state.selected)

    async def stop(self) -> None:
        """Cancel the polls and close both connections."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.ticker_channel.close()
        await self.book_channel.close()
        logger.info("Feed stopped")

    async def select(self, symbol: str) -> None:
        """
        Switch instrument.

        The book is cleared and a snapshot pushed before the old connections
        close, so the view never shows the previous book under the new label.
        """
        if not self.state.select(symbol):
            return
        self._publish()
        await self._subscribe(symbol)

    async def _subscribe(self, symbol: str) -> None:
        await self.ticker_channel.switch(symbol)
        await self.book_channel.switch(symbol)

    # ---- Producers --------------------------------------------------------

    async def _load_listing(self) -> None:
        symbols = await self.client.list_symbols()
        logger.info("Listed %d %s symbols", len(symbols), self.config.quote_coin)
        self.state.set_symbols(symbols)
        self._publish()

    async def _load_news(self) -> None:
        self.state.set_news(await self._news_loader())
        self._publish()

    async def _consume(
        self,
        stream: AsyncIterator[list[Any]],
        apply: Callable[[list[Any]], None],
    ) -> None:
        async for items in stream:
            apply(items)
            self._publish()

    def _on_ticker(self, message: tuple[str, dict[str, float]]) -> None:
        symbol, fields = message
        if self.state.apply_ticker_update(symbol, fields):
            self._publish()

    def _on_book(self, book: OrderBookSnapshot) -> None:
        if self.state.apply_order_book(book):
            self._publish()

    # ---- Output -----------------------------------------------------------

    def snapshot(self) -> DashboardSnapshot:
        return self.state.snapshot()._replace(channels=(
            (self.ticker_channel.name, self.ticker_channel.state.value),
            (self.book_channel.name, self.book_channel.state.value),
        ))

    def _publish(self) -> None:
        """Non-blocking put; drop oldest, put newest when the queue is full."""
        snapshot = self.snapshot()
        try:
            self.snapshot_queue.put_nowait(snapshot)
        except asyncio.QueueFull:
            self.snapshot_queue.get_nowait()
            self.snapshot_queue.put_nowait(snapshot)
