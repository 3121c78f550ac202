"""Edit propagation — push an edit on a coarse bar or indicator point back into base bars.

All functions return a new base list; the input list is never mutated.
Out-of-range targets and undefined prerequisites return an unchanged copy.

Continuity is only repaired for the one neighbour touched by an edit:
editing an open re-links the previous bar's close, editing a close re-links
the next bar's open.
"""

from __future__ import annotations

from typing import Literal

from loguru import logger

from candlelab.engine.aggregator import aggregate, group_range
from candlelab.engine.indicators import OVERLAY_INDICATORS, ema
from candlelab.engine.random_source import Mulberry32, RandomSource, entropy_seed, pick
from candlelab.models.market import Bar

EditField = Literal["open", "high", "low", "close"]
EDIT_FIELDS = ("open", "high", "low", "close")
EDITABLE_INDICATORS = OVERLAY_INDICATORS


def _copy(bars: list[Bar]) -> list[Bar]:
    return [b.model_copy() for b in bars]


def _widen(bar: Bar) -> None:
    """Stretch high/low so the bar contains its own body again."""
    bar.high = max(bar.high, bar.open, bar.close)
    bar.low = min(bar.low, bar.open, bar.close)


def _link_previous(bars: list[Bar], idx: int) -> None:
    if idx > 0:
        prev = bars[idx - 1]
        prev.close = bars[idx].open
        _widen(prev)


def _link_next(bars: list[Bar], idx: int) -> None:
    if idx + 1 < len(bars):
        nxt = bars[idx + 1]
        nxt.open = bars[idx].close
        _widen(nxt)


# ─── Per-field solvers (operate in place on a copy) ──────────────────


def _edit_open(bars: list[Bar], start: int, target: float) -> None:
    bar = bars[start]
    delta = target - bar.open
    bar.open = target
    _widen(bar)
    _link_previous(bars, start)
    logger.debug(f"open edit: bar {start} delta={delta:+.4f}")


def _edit_close(bars: list[Bar], end: int, target: float) -> None:
    bar = bars[end]
    delta = target - bar.close
    bar.close = target
    _widen(bar)
    _link_next(bars, end)
    logger.debug(f"close edit: bar {end} delta={delta:+.4f}")


def _edit_high(bars: list[Bar], start: int, end: int, target: float, rng: RandomSource) -> None:
    group = bars[start : end + 1]
    floor = max(b.body_high for b in group)
    target = max(target, floor)
    current = max(b.high for b in group)

    if target >= current:
        candidates = [b for b in group if b.high == current] or group
        chosen = pick(rng, candidates)
        chosen.high = max(target, chosen.body_high)
    else:
        for b in group:
            b.high = max(b.body_high, min(b.high, target))
        candidates = [b for b in group if b.body_high <= target]
        chosen = pick(rng, candidates) if candidates else None
        if chosen is not None:
            chosen.high = target

    logger.debug(f"high edit: group [{start}, {end}] target={target} bar={chosen.index if chosen else None}")


def _edit_low(bars: list[Bar], start: int, end: int, target: float, rng: RandomSource) -> None:
    group = bars[start : end + 1]
    ceiling = min(b.body_low for b in group)
    target = min(target, ceiling)
    current = min(b.low for b in group)

    if target <= current:
        candidates = [b for b in group if b.low == current] or group
        chosen = pick(rng, candidates)
        chosen.low = min(target, chosen.body_low)
    else:
        for b in group:
            b.low = min(b.body_low, max(b.low, target))
        candidates = [b for b in group if b.body_low >= target]
        chosen = pick(rng, candidates) if candidates else None
        if chosen is not None:
            chosen.low = target

    logger.debug(f"low edit: group [{start}, {end}] target={target} bar={chosen.index if chosen else None}")


# ─── Public API ───────────────────────────────────────────────────────


def edit_aggregate_field(
    bars: list[Bar],
    granularity: int,
    group_index: int,
    field: EditField,
    target: float,
    rng: RandomSource | None = None,
) -> list[Bar]:
    """Change one field of coarse bar ``group_index`` and redistribute it over its base bars.

    open/close round-trip exactly. high/low land on ``target`` when it is
    feasible, otherwise on the nearest body bound of the group. Ties between
    bars sharing the extreme are broken with ``rng``.
    """
    result = _copy(bars)
    span = group_range(group_index, granularity, len(bars))
    if span is None or field not in EDIT_FIELDS:
        logger.debug(f"Ignoring edit of {field} on group {group_index} (g={granularity}, n={len(bars)})")
        return result

    start, end = span
    target = float(target)
    if rng is None:
        rng = Mulberry32(entropy_seed())

    if field == "open":
        _edit_open(result, start, target)
    elif field == "close":
        _edit_close(result, end, target)
    elif field == "high":
        _edit_high(result, start, end, target, rng)
    else:
        _edit_low(result, start, end, target, rng)
    return result


def edit_indicator_point(
    bars: list[Bar],
    kind: str,
    period: int,
    display_index: int,
    target: float,
    granularity: int = 1,
) -> list[Bar]:
    """Move a moving-average point to ``target`` by changing one close.

    The adjusted bar is the last base bar of the displayed group at
    ``display_index``; its successor's open is re-linked afterwards.
    """
    result = _copy(bars)
    name = kind.upper()
    if name not in EDITABLE_INDICATORS:
        logger.warning(f"Indicator {kind} does not support point edits")
        return result

    period = max(1, int(period))
    closes = [b.close for b in aggregate(bars, granularity)]
    span = group_range(display_index, granularity, len(bars))
    if span is None or display_index < period - 1:
        return result
    _, end = span
    bar = result[end]

    if name == "SMA":
        window_sum = sum(closes[display_index - period + 1 : display_index + 1])
        delta = period * target - window_sum
        bar.close = bar.close + delta
    else:
        if display_index < 1:
            return result
        prev_ema = ema(closes, period)[display_index - 1]
        if prev_ema is None:
            return result
        k = 2.0 / (period + 1)
        new_close = (target - (1 - k) * prev_ema) / k
        delta = new_close - bar.close
        bar.close = new_close

    _widen(bar)
    _link_next(result, end)
    logger.debug(f"{name}({period}) point {display_index} -> {target}: bar {end} close delta={delta:+.4f}")
    return result
