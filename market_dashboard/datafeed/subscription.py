"""
Owned streaming subscription for one channel.

At most one connection is live per channel: switch() closes the current
connection and waits for it to finish before opening the next one.

States:
    DISCONNECTED -> CONNECTING   switch() started a connection task
    CONNECTING   -> SUBSCRIBED   subscribe op sent
    any          -> DISCONNECTED closed, failed or upstream ended
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import AsyncIterator, Callable, Generic, Optional, TypeVar

from ..errors import MarketDataError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (symbol, on_subscribed) -> stream of messages
StreamFactory = Callable[[str, Callable[[], None]], AsyncIterator[T]]


class ChannelState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


class ChannelSubscription(Generic[T]):
    """
    One channel, one symbol, one task.

    Thread-safety: NOT thread-safe. Designed for single-threaded async use.
    """

    def __init__(
        self,
        name: str,
        open_stream: StreamFactory[T],
        on_message: Callable[[T], None],
    ) -> None:
        self.name = name
        self._open_stream = open_stream
        self._on_message = on_message
        self._task: Optional[asyncio.Task[None]] = None
        # Serializes switch/close so only one connection task is ever live
        self._lock = asyncio.Lock()
        self.symbol: Optional[str] = None
        self.state = ChannelState.DISCONNECTED

    async def switch(self, symbol: str) -> None:
        """Close the current connection, then subscribe `symbol`."""
        async with self._lock:
            await self._teardown()
            self.symbol = symbol
            self.state = ChannelState.CONNECTING
            self._task = asyncio.create_task(self._run(symbol), name=f"{self.name}:{symbol}")

    async def close(self) -> None:
        """Tear down the current connection, if any, and wait for it."""
        async with self._lock:
            await self._teardown()

    async def _teardown(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.state = ChannelState.DISCONNECTED

    def _mark_subscribed(self, symbol: str) -> None:
        if symbol == self.symbol:
            self.state = ChannelState.SUBSCRIBED

    async def _run(self, symbol: str) -> None:
        try:
            stream = self._open_stream(symbol, lambda: self._mark_subscribed(symbol))
            async for message in stream:
                self._on_message(message)
        except MarketDataError as e:
            logger.warning("%s stream for %s failed: %s", self.name, symbol, e)
        finally:
            if symbol == self.symbol:
                self.state = ChannelState.DISCONNECTED
