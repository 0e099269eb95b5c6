"""
Market Dashboard - Bitget public market data in the terminal.

Architecture:
- datafeed/: REST polls, WebSocket subscriptions, news, the selection controller
- engine/: View state, ticker merging, formatting and display rows
- ui/: Dashboard cards (Textual TUI)
- relay.py: RSS passthrough endpoint (aiohttp.web)
"""

__version__ = "0.1.0"
