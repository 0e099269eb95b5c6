"""
Reshape feed collections into display rows.

Pure functions; the view calls them on every snapshot it renders.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

import numpy as np

from ..types import BookLevel, FuturesRow, Symbol


class DepthRow(NamedTuple):
    """One depth bar: level plus its width as a fraction of the widest level."""
    price: float
    size: float
    width_ratio: float


def rank_futures(rows: Sequence[FuturesRow], limit: int = 10) -> list[FuturesRow]:
    """
    Top `limit` rows by 24h quote volume, descending.

    sorted() is stable with reverse=True, so equal volumes keep input order.
    Missing volume ranks as 0.
    """
    ranked = sorted(rows, key=lambda r: r.quote_volume_24h or 0.0, reverse=True)
    return ranked[:limit]


def futures_display_name(inst_id: str, suffix: str = "_UMCBL") -> str:
    """Strip the contract-type suffix when present; other ids pass through."""
    if suffix and inst_id.endswith(suffix):
        return inst_id[: -len(suffix)]
    return inst_id


def depth_max(bids: Sequence[BookLevel], asks: Sequence[BookLevel]) -> float:
    """Largest size across both sides of the book. 0.0 when empty."""
    sizes = np.fromiter((lv.size for lv in (*bids, *asks)), dtype=np.float64)
    return float(sizes.max()) if sizes.size else 0.0


def depth_rows(levels: Sequence[BookLevel], widest: float, limit: int = 12) -> list[DepthRow]:
    """Scale the first `limit` levels against the largest size in the book."""
    shown = list(levels[:limit])
    if not shown:
        return []
    sizes = np.array([lv.size for lv in shown], dtype=np.float64)
    ratios = np.minimum(1.0, sizes / (widest or 1.0))
    return [
        DepthRow(lv.price, lv.size, float(ratio))
        for lv, ratio in zip(shown, ratios)
    ]


def symbol_rows(symbols: Sequence[Symbol], limit: int = 200) -> list[tuple[str, str, str]]:
    """(symbol, min trade amount, maker/taker fee) for the listing table."""
    return [
        (s.symbol, s.min_trade_amount, f"{s.maker_fee_rate}/{s.taker_fee_rate}")
        for s in symbols[:limit]
    ]
