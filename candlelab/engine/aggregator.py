"""Fixed-size aggregation of base bars into coarser timeframes.

Group ``gi`` covers base indices [gi*g, gi*g + g - 1]. A trailing group with
fewer than ``g`` bars is dropped, never partially aggregated.
"""

import numpy as np
import pandas as pd

from candlelab.config import settings
from candlelab.models.market import Bar, Viewport

TIMEFRAME_MINUTES = {
    "M1": 1, "M5": 5, "M15": 15, "M30": 30,
    "H1": 60, "H4": 240, "D1": 1440,
}


def timeframe_minutes(tf: str) -> int:
    """Convert timeframe string to minutes."""
    m = TIMEFRAME_MINUTES.get(tf.upper())
    if m is None:
        raise ValueError(f"Unknown timeframe: {tf}")
    return m


def granularity_for(timeframe: str, base_timeframe: str | None = None) -> int:
    """Number of base bars per bar of ``timeframe``."""
    base = timeframe_minutes(base_timeframe or settings.base_timeframe)
    return max(1, timeframe_minutes(timeframe) // base)


def timeframe_label(granularity: int, base_timeframe: str | None = None) -> str:
    """Timeframe name for ``granularity`` base bars, e.g. 5 on M1 -> "M5".

    Granularities with no named timeframe get a ``<base>x<g>`` label.
    """
    base = (base_timeframe or settings.base_timeframe).upper()
    g = max(1, int(granularity))
    minutes = timeframe_minutes(base) * g
    for tf, m in TIMEFRAME_MINUTES.items():
        if m == minutes:
            return tf
    return f"{base}x{g}"


def bars_to_frame(bars: list[Bar]) -> pd.DataFrame:
    return pd.DataFrame({
        "open": [b.open for b in bars],
        "high": [b.high for b in bars],
        "low": [b.low for b in bars],
        "close": [b.close for b in bars],
    })


def group_count(length: int, granularity: int) -> int:
    return length // max(1, int(granularity))


def aggregate(bars: list[Bar], granularity: int) -> list[Bar]:
    """Aggregate base bars into groups of ``granularity``. g=1 is the identity."""
    g = max(1, int(granularity))
    if g == 1:
        return [b.model_copy() for b in bars]

    groups = group_count(len(bars), g)
    if groups == 0:
        return []

    df = bars_to_frame(bars[: groups * g])
    agg = df.groupby(np.arange(len(df)) // g).agg(
        open=("open", "first"),
        high=("high", "max"),
        low=("low", "min"),
        close=("close", "last"),
    )
    return [
        Bar(
            index=int(gi),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
        )
        for gi, row in zip(agg.index, agg.itertuples(index=False))
    ]


def group_range(group_index: int, granularity: int, length: int) -> tuple[int, int] | None:
    """Inclusive base-index range of a coarse bar, or None if it does not exist."""
    g = max(1, int(granularity))
    if group_index < 0 or group_index >= group_count(length, g):
        return None
    start = group_index * g
    end = min(length - 1, start + g - 1)
    return start, end


def group_of(base_index: int, granularity: int) -> int:
    """Coarse index containing ``base_index``."""
    return base_index // max(1, int(granularity))


def rescale_viewport(viewport: Viewport, old_granularity: int, new_granularity: int, new_length: int) -> Viewport:
    """Keep the same visible time span after a granularity change, clamped to the new data."""
    old_g = max(1, int(old_granularity))
    new_g = max(1, int(new_granularity))
    ratio = old_g / new_g

    min_count = settings.min_view_count
    count = int(round(viewport.count * ratio))
    count = max(min_count, min(count, max(min_count, new_length)))
    start = viewport.start * ratio
    start = max(0.0, min(start, float(max(0, new_length - count))))
    return Viewport(start=start, count=count)
