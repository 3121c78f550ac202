"""Viewport transform — bar index/price <-> pixel mapping for a chart surface.

Only the geometry lives here; drawing is up to the caller.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from candlelab.config import settings
from candlelab.engine.generator import round_price
from candlelab.models.market import Bar, Viewport

PRICE_PADDING = 0.08  # fraction of the price range added above and below


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def clamp_viewport(viewport: Viewport, length: int) -> Viewport:
    """Enforce count >= min_view_count and start + count <= length where possible."""
    min_count = settings.min_view_count
    count = int(_clamp(int(viewport.count), min_count, max(min_count, length)))
    start = _clamp(viewport.start, 0.0, float(max(0, length - count)))
    return Viewport(start=start, count=count)


def pin_right(viewport: Viewport, old_length: int, new_length: int) -> Viewport:
    """Keep the right edge pinned to the newest bar if it was showing before the change."""
    at_end = viewport.start + viewport.count >= old_length - 0.01
    if at_end:
        viewport = Viewport(start=max(0.0, float(new_length - viewport.count)), count=viewport.count)
    return clamp_viewport(viewport, new_length)


def price_range(bars: Iterable[Bar], overlays: Iterable[Iterable[float | None]] = ()) -> tuple[float, float]:
    """Padded (min, max) price covering bars and any defined overlay values."""
    lo = math.inf
    hi = -math.inf
    for b in bars:
        lo = min(lo, b.low)
        hi = max(hi, b.high)
    for series in overlays:
        for v in series:
            if v is not None:
                lo = min(lo, v)
                hi = max(hi, v)
    if lo > hi:
        return 0.0, 1.0
    pad = (hi - lo) * PRICE_PADDING or 1.0
    return lo - pad, hi + pad


@dataclass
class ViewportTransform:
    """Pixel geometry for one viewport on a ``width`` x ``height`` surface."""
    viewport: Viewport
    width: float
    height: float
    y_min: float = 0.0
    y_max: float = 1.0
    padding_left: float = 48.0
    padding_right: float = 16.0
    padding_y: float = 10.0

    # --- X axis ---

    @property
    def inner_width(self) -> float:
        return max(100.0, self.width - self.padding_left - self.padding_right)

    @property
    def step(self) -> float:
        return self.inner_width / max(1, self.viewport.count)

    @property
    def bar_width(self) -> int:
        return int(_clamp(math.floor(self.step * 0.6), 3, 22))

    def index_to_x(self, index: float) -> float:
        return self.padding_left + (index - self.viewport.start) * self.step + self.step / 2

    def x_to_index(self, x: float) -> float:
        """Fractional bar index under pixel ``x`` (clamped to the visible window)."""
        offset = _clamp((x - self.padding_left) / self.step, 0.0, float(self.viewport.count))
        return self.viewport.start + offset

    def bar_at(self, x: float, length: int) -> int | None:
        if length <= 0:
            return None
        return int(_clamp(math.floor(self.x_to_index(x)), 0, length - 1))

    def visible_range(self, length: int) -> range:
        first = max(0, math.floor(self.viewport.start))
        last = min(length, math.ceil(self.viewport.start + self.viewport.count))
        return range(first, max(first, last))

    # --- Y axis ---

    @property
    def _plot_height(self) -> float:
        return max(1.0, self.height - 2 * self.padding_y)

    def price_to_y(self, price: float) -> int:
        span = (self.y_max - self.y_min) or 1.0
        t = (price - self.y_min) / span
        return round((1 - t) * self._plot_height + self.padding_y)

    def y_to_price(self, y: float) -> float:
        t = _clamp((y - self.padding_y) / self._plot_height, 0.0, 1.0)
        return round_price(self.y_max - t * (self.y_max - self.y_min))

    def grid_lines(self, ticks: int = 6) -> list[int]:
        ticks = max(1, ticks)
        return [round(i / ticks * self._plot_height + self.padding_y) for i in range(ticks + 1)]

    @classmethod
    def for_bars(
        cls,
        viewport: Viewport,
        width: float,
        height: float,
        bars: list[Bar],
        overlays: Iterable[Iterable[float | None]] = (),
    ) -> ViewportTransform:
        y_min, y_max = price_range(bars, overlays)
        return cls(viewport=viewport, width=width, height=height, y_min=y_min, y_max=y_max)


# ─── Pan / zoom ───────────────────────────────────────────────────────


def pan(viewport: Viewport, dx_pixels: float, step: float, length: int) -> Viewport:
    """Drag the chart right by ``dx_pixels`` (older bars come into view)."""
    if step <= 0:
        return clamp_viewport(viewport, length)
    moved = Viewport(start=viewport.start - dx_pixels / step, count=viewport.count)
    return clamp_viewport(moved, length)


def zoom_factor(delta_y: float) -> float:
    """Wheel delta -> zoom factor; positive delta zooms out."""
    step = settings.zoom_step
    return 1.0 + step if delta_y > 0 else 1.0 - step


def zoom_at(viewport: Viewport, anchor_x: float, factor: float, transform: ViewportTransform, length: int) -> Viewport:
    """Scale the visible bar count around the bar under ``anchor_x``."""
    factor = _clamp(factor, settings.zoom_factor_min, settings.zoom_factor_max)
    min_count = settings.min_view_count
    anchor_index = transform.x_to_index(anchor_x)

    new_count = int(_clamp(round(viewport.count * factor), min_count, max(min_count, length)))
    new_step = transform.inner_width / new_count
    offset = _clamp((anchor_x - transform.padding_left) / new_step, 0.0, float(new_count))
    new_start = _clamp(anchor_index - offset, 0.0, float(max(0, length - new_count)))
    return Viewport(start=new_start, count=new_count)
