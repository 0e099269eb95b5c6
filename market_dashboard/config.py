"""
Runtime configuration.

Defaults match Bitget's public v2 API. main.py overrides the tunables from
command-line flags; tests build their own instances.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

# Bitget endpoints
REST_BASE = "https://api.bitget.com"
WS_PUBLIC_URL = "wss://ws.bitget.com/v2/ws/public"

# News
RSS_URL = "https://www.bitget.com/academy/en/rss.xml"
RELAY_PREFIX = "https://api.allorigins.win/raw?url="
ACADEMY_URL = "https://www.bitget.com/academy/en"


@dataclass(frozen=True)
class DashboardConfig:
    """Tunables shared by the feed, the client and the view."""

    symbol: str = "BTCUSDT"
    quote_coin: str = "USDT"
    ticker_interval_sec: float = 10.0
    futures_interval_sec: float = 15.0
    futures_product_type: str = "umcbl"
    futures_suffix: str = "_UMCBL"
    futures_limit: int = 10
    depth_levels: int = 12
    symbol_table_limit: int = 200
    news_limit: int = 8
    ws_ping_interval_sec: float = 30.0
    request_timeout_sec: float = 10.0
    rest_base: str = REST_BASE
    ws_url: str = WS_PUBLIC_URL
    rss_url: str = RSS_URL
    relay_prefix: str = RELAY_PREFIX

    @property
    def news_url(self) -> str:
        """RSS URL wrapped in the CORS relay."""
        return self.relay_prefix + quote(self.rss_url, safe="")
