"""Exceptions raised at the market data boundary."""


class MarketDataError(Exception):
    """Base class for every upstream failure the dashboard degrades on."""


class FetchError(MarketDataError):
    """Network failure or non-2xx HTTP status."""


class PayloadError(MarketDataError):
    """Body could not be parsed, or did not have the expected shape."""
