"""Synthetic OHLC bars from a geometric random walk.

Each bar is simulated as ``substeps`` log-normal increments starting at the
bar's open; the close is the last sub-step price and high/low are the path
extremes (open included). Every bar opens at the previous close.
"""

from __future__ import annotations

import math

from loguru import logger

from candlelab.config import settings
from candlelab.engine.random_source import Mulberry32, RandomSource, entropy_seed
from candlelab.models.market import Bar


def round_price(value: float, decimals: int | None = None) -> float:
    """Round half-up to the display precision."""
    places = settings.price_decimals if decimals is None else decimals
    scale = 10 ** places
    return math.floor(value * scale + 0.5) / scale


def _standard_normal(rng: RandomSource) -> float:
    """Box-Muller transform of two uniforms."""
    u1 = 0.0
    while u1 == 0.0:
        u1 = rng.random()
    u2 = rng.random()
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)


def generate_bars(
    n: int = 60,
    start: float = 100.0,
    mu: float = 0.001,
    sigma: float = 0.02,
    rng: RandomSource | int | None = None,
    substeps: int = 4,
    first_index: int = 0,
) -> list[Bar]:
    """Generate ``n`` base bars.

    ``rng`` may be a random source, an integer seed, or None (OS entropy).
    """
    if rng is None:
        rng = Mulberry32(entropy_seed())
    elif isinstance(rng, int):
        rng = Mulberry32(rng)

    substeps = max(1, int(substeps))
    dt = 1.0 / substeps
    drift = (mu - 0.5 * sigma * sigma) * dt
    shock = sigma * math.sqrt(dt)

    bars: list[Bar] = []
    last = start
    for i in range(max(0, int(n))):
        open_ = last
        price = open_
        bar_high = open_
        bar_low = open_
        for _ in range(substeps):
            z = _standard_normal(rng)
            price = price * math.exp(drift + shock * z)
            bar_high = max(bar_high, price)
            bar_low = min(bar_low, price)
        bars.append(Bar(
            index=first_index + i,
            open=round_price(open_),
            high=round_price(bar_high),
            low=round_price(bar_low),
            close=round_price(price),
        ))
        last = price

    return bars


def append_bars(bars: list[Bar], count: int, rng: RandomSource | int | None = None) -> list[Bar]:
    """Return a copy of ``bars`` extended by ``count`` new bars continuing from the last close."""
    result = [b.model_copy() for b in bars]
    if count <= 0:
        return result
    start = bars[-1].close if bars else settings.start_price
    new_bars = generate_bars(
        count,
        start=start,
        mu=settings.drift,
        sigma=settings.volatility,
        rng=rng,
        substeps=settings.substeps,
        first_index=len(bars),
    )
    result.extend(new_bars)
    logger.debug(f"Appended {count} bars starting at {start}")
    return result
