"""
Market dashboard TUI using Textual.

Displays:
- Top: status bar (selected pair, stream states, last update)
- Row 1: pair selector, price & volume, futures top by 24h volume
- Row 2: order book depth bars, token listing
- Row 3: news, learning links

Rendering notes:
- Each card keeps the latest DashboardSnapshot and re-renders as a Rich renderable
- Row builders are module-level functions so they can be tested without an app
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Optional

from rich.console import Group, RenderableType
from rich.style import Style
from rich.table import Table
from rich.text import Text

from textual.app import App, ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Footer, Select, Static

from ..config import ACADEMY_URL
from ..engine.formatting import fmt, format_price, pct
from ..engine.rows import DepthRow, depth_max, depth_rows, futures_display_name, symbol_rows

if TYPE_CHECKING:
    from ..config import DashboardConfig
    from ..datafeed.feed import DashboardFeed
    from ..types import DashboardSnapshot

# Color scheme (dark theme)
BID_COLOR = "#22c55e"      # Green
ASK_COLOR = "#ef4444"      # Red
UP_COLOR = "#22c55e"
DOWN_COLOR = "#ef4444"
PRICE_COLOR = "#f8fafc"
HEADER_COLOR = "#94a3b8"
BAR_BG = "#1e293b"

BAR_WIDTH = 14

LEARN_LINKS = (
    ("What is spot trading?", f"{ACADEMY_URL}/articles/what-is-spot-trading"),
    ("What are futures?", f"{ACADEMY_URL}/articles/what-is-futures-trading"),
    ("Funding rate in short", f"{ACADEMY_URL}/articles/what-is-funding-rate"),
    ("All academy articles", ACADEMY_URL),
)


def change_color(change: float) -> str:
    return UP_COLOR if change >= 0 else DOWN_COLOR


def make_bar(width_ratio: float, width: int, color: str, align_right: bool = False) -> Text:
    """Horizontal bar using block characters; bids grow from the right edge."""
    fill_width = int(max(0.0, min(1.0, width_ratio)) * width)
    blocks = "█" * fill_width
    pad = " " * (width - fill_width)
    bar = pad + blocks if align_right else blocks + pad
    return Text(bar, style=Style(color=color, bgcolor=BAR_BG))


def _table(*columns: str) -> Table:
    table = Table(
        show_header=True,
        header_style=HEADER_COLOR,
        box=None,
        padding=(0, 1),
        collapse_padding=True,
        expand=True,
    )
    for name in columns:
        table.add_column(name, no_wrap=True)
    return table


def render_price(snap: DashboardSnapshot) -> RenderableType:
    """Last price, 24h change, high/low and volumes for the selected pair."""
    spot = snap.spot
    if spot is None:
        return Text(f"Waiting for {snap.selected} ticker...", style="dim")

    change = pct(spot.open_24h, spot.last_price)
    grid = Table.grid(expand=True, padding=(0, 2))
    grid.add_column()
    grid.add_column()
    grid.add_row(Text("Last Price", style="dim"), Text("24h Change", style="dim"))
    grid.add_row(
        Text(format_price(spot.last_price), style=f"bold {PRICE_COLOR}"),
        Text(f"{fmt(change, 2)}%", style=f"bold {change_color(change)}"),
    )
    grid.add_row(Text("24h High", style="dim"), Text("24h Low", style="dim"))
    grid.add_row(format_price(spot.high_24h), format_price(spot.low_24h))
    grid.add_row(Text("Base Vol 24h", style="dim"), Text("Quote Vol 24h", style="dim"))
    grid.add_row(fmt(spot.base_volume_24h), fmt(spot.quote_volume_24h))
    return grid


def render_futures(snap: DashboardSnapshot, suffix: str = "_UMCBL") -> RenderableType:
    """Futures rows arrive ranked; change_24h is a ratio (0.01 = 1%)."""
    if not snap.futures:
        return Text("Loading futures...", style="dim")
    table = _table("Inst", "Last", "24h %", "Vol24h")
    for row in snap.futures:
        change = (row.change_24h or 0.0) * 100
        table.add_row(
            futures_display_name(row.inst_id, suffix),
            format_price(row.last_price),
            Text(f"{fmt(change, 2)}%", style=change_color(change)),
            fmt(row.quote_volume_24h),
        )
    return table


def _depth_side(title: str, rows: list[DepthRow], color: str, is_bid: bool) -> Table:
    table = _table(title, "", "Size")
    for row in rows:
        table.add_row(
            Text(format_price(row.price), style=color),
            make_bar(row.width_ratio, BAR_WIDTH, color, align_right=is_bid),
            fmt(row.size, 4),
        )
    return table


def render_depth(snap: DashboardSnapshot, levels: int = 12) -> RenderableType:
    book = snap.book
    if not book.bids and not book.asks:
        return Text(f"Waiting for {snap.selected} order book...", style="dim")

    widest = depth_max(book.bids, book.asks)
    grid = Table.grid(expand=True, padding=(0, 2))
    grid.add_column()
    grid.add_column()
    grid.add_row(
        _depth_side("Bids", depth_rows(book.bids, widest, levels), BID_COLOR, True),
        _depth_side("Asks", depth_rows(book.asks, widest, levels), ASK_COLOR, False),
    )
    return grid


def render_symbols(snap: DashboardSnapshot, limit: int = 200) -> RenderableType:
    if not snap.symbols:
        return Text("No symbols listed", style="dim")
    table = _table("Symbol", "Min Trade", "Maker/Taker")
    for symbol, min_trade, fees in symbol_rows(snap.symbols, limit):
        style = "bold" if symbol == snap.selected else ""
        table.add_row(Text(symbol, style=style), min_trade, fees)
    return table


def render_news(snap: DashboardSnapshot) -> RenderableType:
    if not snap.news:
        return Text("Loading news...", style="dim")
    lines: list[RenderableType] = []
    for item in snap.news:
        lines.append(Text(item.title, style=Style(bold=True, link=item.link)))
        if item.published_at:
            lines.append(Text(item.published_at, style="dim"))
    return Group(*lines)


def render_learn() -> RenderableType:
    return Group(*(
        Text(f"• {title}", style=Style(color=BID_COLOR, link=url))
        for title, url in LEARN_LINKS
    ))


class SnapshotCard(Static):
    """Card that re-renders from the latest snapshot."""

    DEFAULT_CSS = """
    SnapshotCard {
        border: round #334155;
        border-title-color: #cbd5e1;
        padding: 0 1;
        height: auto;
    }
    """

    def __init__(self, title: str, placeholder: str = "Waiting for data...", **kwargs) -> None:
        super().__init__(**kwargs)
        self.border_title = title
        self._placeholder = placeholder
        self._snapshot: Optional[DashboardSnapshot] = None

    def update_snapshot(self, snapshot: DashboardSnapshot) -> None:
        self._snapshot = snapshot
        self.refresh(layout=True)

    def render(self) -> RenderableType:
        if self._snapshot is None:
            return Text(self._placeholder, style="dim")
        return self.render_snapshot(self._snapshot)

    def render_snapshot(self, snap: DashboardSnapshot) -> RenderableType:
        raise NotImplementedError


class PriceCard(SnapshotCard):
    def render_snapshot(self, snap: DashboardSnapshot) -> RenderableType:
        return render_price(snap)


class FuturesCard(SnapshotCard):
    def __init__(self, suffix: str, **kwargs) -> None:
        super().__init__("Futures - Top by Vol(24h)", **kwargs)
        self.border_subtitle = suffix.lstrip("_")
        self._suffix = suffix

    def render_snapshot(self, snap: DashboardSnapshot) -> RenderableType:
        return render_futures(snap, self._suffix)


class DepthCard(SnapshotCard):
    def __init__(self, levels: int, **kwargs) -> None:
        super().__init__("Order Book", **kwargs)
        self._levels = levels

    def update_snapshot(self, snapshot: DashboardSnapshot) -> None:
        self.border_title = f"Order Book - {snapshot.selected}"
        super().update_snapshot(snapshot)

    def render_snapshot(self, snap: DashboardSnapshot) -> RenderableType:
        return render_depth(snap, self._levels)


class SymbolCard(SnapshotCard):
    def __init__(self, title: str, limit: int, **kwargs) -> None:
        super().__init__(title, **kwargs)
        self._limit = limit

    def render_snapshot(self, snap: DashboardSnapshot) -> RenderableType:
        return render_symbols(snap, self._limit)


class NewsCard(SnapshotCard):
    def render_snapshot(self, snap: DashboardSnapshot) -> RenderableType:
        return render_news(snap)


class StatusBar(Static):
    """Status bar showing the selected pair, stream states and update time."""

    DEFAULT_CSS = """
    StatusBar {
        dock: top;
        height: 1;
        padding: 0 2;
        background: #0f172a;
    }
    """

    def __init__(self) -> None:
        super().__init__()
        self._snapshot: Optional[DashboardSnapshot] = None

    def update_snapshot(self, snapshot: DashboardSnapshot) -> None:
        self._snapshot = snapshot
        self.refresh()

    def render(self) -> RenderableType:
        if self._snapshot is None:
            return Text("Connecting...", style="dim")

        snap = self._snapshot
        result = Text()
        result.append(" Bitget Mini Dashboard ", style="bold white on #1e40af")
        result.append("  ")
        result.append(f" {snap.selected} ", style="bold black on #e2e8f0")
        if snap.book.bids and snap.book.asks:
            result.append("  Bid: ", style="dim")
            result.append(format_price(snap.book.bids[0].price), style=BID_COLOR)
            result.append("  Ask: ", style="dim")
            result.append(format_price(snap.book.asks[0].price), style=ASK_COLOR)
        for channel, state in snap.channels:
            color = "green" if state == "subscribed" else "yellow"
            result.append(f"  {channel}: ", style="dim")
            result.append(state, style=color)
        result.append("  │  ", style="dim")
        result.append(time.strftime("%H:%M:%S", time.localtime(snap.timestamp_ms / 1000)), style="cyan")
        return result


class DashboardApp(App):
    """Main dashboard application."""

    CSS = """
    Screen {
        background: #0f172a;
    }

    .row {
        height: auto;
    }

    .row > * {
        width: 1fr;
    }

    #selector-card, #learn-card {
        border: round #334155;
        border-title-color: #cbd5e1;
        height: auto;
        padding: 0 1;
    }

    #symbols-scroll {
        height: 20;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, feed: DashboardFeed, config: Optional[DashboardConfig] = None) -> None:
        super().__init__()
        self.feed = feed
        self.config = config or feed.config
        self._selected = self.config.symbol
        self._option_count = 0
        self._status_bar: Optional[StatusBar] = None
        self._cards: list[SnapshotCard] = []
        self._selector: Optional[Select[str]] = None

    def compose(self) -> ComposeResult:
        cfg = self.config
        self._status_bar = StatusBar()
        self._selector = Select(
            [(cfg.symbol, cfg.symbol)],
            value=cfg.symbol,
            allow_blank=False,
            id="pair-select",
        )
        price = PriceCard("Price & Volume (Spot)")
        futures = FuturesCard(cfg.futures_suffix)
        depth = DepthCard(cfg.depth_levels)
        symbols = SymbolCard(f"Token Listing ({cfg.quote_coin})", cfg.symbol_table_limit)
        news = NewsCard("News (Bitget Academy)", placeholder="Loading news...")
        learn = Static(render_learn(), id="learn-card")
        learn.border_title = "Academy - Basics"
        self._cards = [price, futures, depth, symbols, news]

        selector_card = VerticalScroll(self._selector, id="selector-card")
        selector_card.border_title = f"Select Pair ({cfg.quote_coin})"

        yield self._status_bar
        with VerticalScroll():
            yield Horizontal(selector_card, price, futures, classes="row")
            yield Horizontal(depth, VerticalScroll(symbols, id="symbols-scroll"), classes="row")
            yield Horizontal(news, learn, classes="row")
        yield Footer()

    async def on_mount(self) -> None:
        """Start the feed and the snapshot consumer."""
        await self.feed.start()
        self.run_worker(self._consume_snapshots(), exclusive=True)

    async def on_unmount(self) -> None:
        await self.feed.stop()

    async def _consume_snapshots(self) -> None:
        """Consume snapshots from the queue and update UI."""
        while True:
            try:
                snapshot = await asyncio.wait_for(self.feed.snapshot_queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            self.apply_snapshot(snapshot)

    def apply_snapshot(self, snapshot: DashboardSnapshot) -> None:
        if self._status_bar:
            self._status_bar.update_snapshot(snapshot)
        for card in self._cards:
            card.update_snapshot(snapshot)
        self._sync_selector(snapshot)

    def _sync_selector(self, snapshot: DashboardSnapshot) -> None:
        """Fill the selector once the listing arrives."""
        if self._selector is None or len(snapshot.symbols) == self._option_count:
            return
        self._option_count = len(snapshot.symbols)
        names = [s.symbol for s in snapshot.symbols]
        if snapshot.selected not in names:
            names.insert(0, snapshot.selected)
        with self.prevent(Select.Changed):
            self._selector.set_options((name, name) for name in names)
            self._selector.value = snapshot.selected

    async def on_select_changed(self, event: Select.Changed) -> None:
        """Selection change -> feed; the feed answers with a fresh snapshot."""
        value = event.value
        if not isinstance(value, str) or value == self._selected:
            return
        self._selected = str(value)
        await self.feed.select(self._selected)


async def run_ui(feed: DashboardFeed) -> None:
    """Run the TUI application."""
    app = DashboardApp(feed)
    await app.run_async()
