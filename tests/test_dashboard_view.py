"""Tests for the dashboard renderers and the Textual app wiring."""

import asyncio
import io

import pytest
from rich.console import Console
from textual.widgets import Select

from market_dashboard.types import (
    BookLevel,
    DashboardSnapshot,
    FuturesRow,
    NewsItem,
    OrderBookSnapshot,
    TickerSnapshot,
)
from market_dashboard.ui.dashboard_view import (
    DashboardApp,
    make_bar,
    render_depth,
    render_futures,
    render_news,
    render_price,
    render_symbols,
)


def _snapshot(**overrides):
    fields = dict(
        selected="BTCUSDT",
        symbols=[],
        tickers=[],
        spot=None,
        book=OrderBookSnapshot("BTCUSDT", [], [], 0),
        futures=[],
        news=[],
        timestamp_ms=1_700_000_000_000,
    )
    fields.update(overrides)
    return DashboardSnapshot(**fields)


def _text(renderable):
    console = Console(width=120, file=io.StringIO(), record=True, color_system=None)
    console.print(renderable)
    return console.export_text()


class TestRenderers:
    def test_price_shows_change_and_volume(self):
        spot = TickerSnapshot("BTCUSDT", last_price=110.0, open_24h=100.0, quote_volume_24h=2_500_000.0)
        out = _text(render_price(_snapshot(spot=spot)))
        assert "110" in out
        assert "10.00%" in out
        assert "2.50M" in out

    def test_price_placeholder_until_ticker(self):
        assert "Waiting for BTCUSDT ticker" in _text(render_price(_snapshot()))

    def test_zero_open_shows_flat_change(self):
        spot = TickerSnapshot("BTCUSDT", last_price=5.0, open_24h=0.0)
        assert "0.00%" in _text(render_price(_snapshot(spot=spot)))

    def test_futures_strip_suffix_and_scale_change(self):
        futures = [
            FuturesRow("BTCUSDT_UMCBL", 64000.0, 0.0123, 2_500_000_000.0),
            FuturesRow("ETHUSDT", 3000.0, -0.05, None),
        ]
        out = _text(render_futures(_snapshot(futures=futures)))
        assert "BTCUSDT_UMCBL" not in out
        assert "BTCUSDT" in out
        assert "1.23%" in out
        assert "-5.00%" in out
        assert "2.50B" in out

    def test_depth_placeholder_for_empty_book(self):
        out = _text(render_depth(_snapshot(selected="ETHUSDT")))
        assert "Waiting for ETHUSDT order book" in out

    def test_depth_lists_both_sides(self, btc_book):
        out = _text(render_depth(_snapshot(book=btc_book), levels=1))
        assert "63999.5" in out
        assert "64000.5" in out
        assert "63999 " not in out

    def test_symbols_table(self, symbols):
        out = _text(render_symbols(_snapshot(symbols=symbols)))
        assert "ETHUSDT" in out
        assert "0.001/0.001" in out

    def test_news_titles(self):
        news = [NewsItem("Funding Rate Explained", "https://example.com", "Mon, 01 Jan 2024")]
        out = _text(render_news(_snapshot(news=news)))
        assert "Funding Rate Explained" in out
        assert "Mon, 01 Jan 2024" in out


class TestMakeBar:
    def test_fill(self):
        assert make_bar(0.5, 10, "green").plain == "█" * 5 + " " * 5

    def test_bid_bars_grow_from_right(self):
        assert make_bar(0.3, 10, "green", align_right=True).plain == " " * 7 + "█" * 3

    def test_ratio_is_clamped(self):
        assert make_bar(4.0, 6, "red").plain == "█" * 6
        assert make_bar(-1.0, 6, "red").plain == " " * 6


class FakeFeed:
    def __init__(self, config):
        self.config = config
        self.snapshot_queue = asyncio.Queue()
        self.started = False
        self.selected = []

    async def start(self):
        self.started = True

    async def stop(self):
        pass

    async def select(self, symbol):
        self.selected.append(symbol)


@pytest.mark.asyncio
async def test_app_fills_selector_and_forwards_selection(config, symbols):
    feed = FakeFeed(config)
    app = DashboardApp(feed)

    async with app.run_test(size=(160, 60)) as pilot:
        assert feed.started
        feed.snapshot_queue.put_nowait(_snapshot(symbols=symbols))
        await pilot.pause(0.2)

        selector = app.query_one("#pair-select", Select)
        assert selector.value == "BTCUSDT"
        assert feed.selected == []

        selector.value = "ETHUSDT"
        await pilot.pause(0.2)

        assert feed.selected == ["ETHUSDT"]
