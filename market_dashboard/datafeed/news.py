"""
Bitget Academy news, fetched once per session through a CORS relay.

Any failure (network, HTTP status, XML) falls back to a fixed placeholder
list. There is no retry.
"""

from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from typing import Optional

import aiohttp

from ..config import ACADEMY_URL, DashboardConfig
from ..errors import FetchError, MarketDataError, PayloadError
from ..types import NewsItem

logger = logging.getLogger(__name__)

FALLBACK_NEWS: tuple[NewsItem, ...] = (
    NewsItem(title="What is Perpetual Futures?", link=ACADEMY_URL),
    NewsItem(title="Funding Rate Explained", link=ACADEMY_URL),
)


def _text(item: ET.Element, tag: str, default: str) -> str:
    node = item.find(tag)
    if node is None or node.text is None:
        return default
    return node.text.strip()


def parse_feed(xml: str, limit: int = 8) -> list[NewsItem]:
    """
    First `limit` <item> entries of an RSS document.

    Raises PayloadError if the document is not well-formed XML.
    """
    try:
        root = ET.fromstring(xml)
    except (ET.ParseError, ValueError) as e:
        raise PayloadError(f"RSS parse failed: {e}") from e
    return [
        NewsItem(
            title=_text(item, "title", ""),
            link=_text(item, "link", "#"),
            published_at=_text(item, "pubDate", ""),
        )
        for item in root.iter("item")
    ][:limit]


async def _fetch_xml(session: aiohttp.ClientSession, url: str) -> str:
    try:
        async with session.get(url) as resp:
            resp.raise_for_status()
            return await resp.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise FetchError(f"news fetch failed: {e!r}") from e
    except UnicodeDecodeError as e:
        raise PayloadError(f"news body is not text: {e}") from e


async def fetch_news(
    config: Optional[DashboardConfig] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> list[NewsItem]:
    """Fetch and parse the academy feed; never raises."""
    config = config or DashboardConfig()
    try:
        if session is None:
            timeout = aiohttp.ClientTimeout(total=config.request_timeout_sec)
            async with aiohttp.ClientSession(timeout=timeout) as own:
                xml = await _fetch_xml(own, config.news_url)
        else:
            xml = await _fetch_xml(session, config.news_url)
        return parse_feed(xml, config.news_limit)
    except MarketDataError as e:
        logger.warning("News unavailable, using placeholders: %s", e)
        return list(FALLBACK_NEWS)
