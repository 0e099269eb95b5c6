#!/usr/bin/env python3
"""
News relay - server-side passthrough of the Bitget Academy RSS feed.

Usage:
    python -m market_dashboard.relay --port 8080

    GET /api/news -> RSS XML with CDN cache headers

On any upstream failure the endpoint still answers 200, with a JSON body
{"fallback": true, "items": []} instead of XML.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import aiohttp
from aiohttp import web

from .config import RSS_URL

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0"
CACHE_CONTROL = "s-maxage=300, stale-while-revalidate=600"

FetchRss = Callable[[], Awaitable[str]]

FETCH_KEY = web.AppKey("fetch_rss", FetchRss)
SESSION_KEY = web.AppKey("session", aiohttp.ClientSession)


async def news_handler(request: web.Request) -> web.Response:
    try:
        xml = await request.app[FETCH_KEY]()
    except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
        logger.warning("RSS passthrough failed: %r", e)
        return web.json_response({"fallback": True, "items": []}, status=200)
    return web.Response(
        text=xml,
        content_type="application/xml",
        charset="utf-8",
        headers={"Cache-Control": CACHE_CONTROL},
    )


def create_app(fetch_rss: Optional[FetchRss] = None, rss_url: str = RSS_URL) -> web.Application:
    """
    Build the relay application.

    `fetch_rss` replaces the upstream call (used by tests); by default a
    shared ClientSession is opened on startup and closed on cleanup.
    """
    app = web.Application()

    if fetch_rss is None:
        async def session_ctx(app: web.Application):
            timeout = aiohttp.ClientTimeout(total=10)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                app[SESSION_KEY] = session
                yield

        async def fetch_upstream() -> str:
            session = app[SESSION_KEY]
            async with session.get(rss_url, headers={"User-Agent": USER_AGENT}) as resp:
                resp.raise_for_status()
                return await resp.text()

        app.cleanup_ctx.append(session_ctx)
        fetch_rss = fetch_upstream

    app[FETCH_KEY] = fetch_rss
    app.router.add_get("/api/news", news_handler)
    return app


def cli() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="News relay - RSS passthrough for the market dashboard",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8080, help="Port (default: 8080)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    web.run_app(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    cli()
