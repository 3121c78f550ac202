"""Chart session — owns the base bars and everything derived from them.

The base sequence is the single source of truth: display bars and indicator
series are recomputed from it on every call. One session per editing context.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from candlelab.config import settings
from candlelab.engine.aggregator import aggregate, granularity_for, rescale_viewport, timeframe_label
from candlelab.engine.editor import EditField, edit_aggregate_field, edit_indicator_point
from candlelab.engine.generator import append_bars, generate_bars
from candlelab.engine.history import EditHistory
from candlelab.engine.indicators import IndicatorEngine
from candlelab.engine.random_source import Mulberry32, RandomSource, entropy_seed
from candlelab.engine.viewport import (
    ViewportTransform,
    clamp_viewport,
    pan,
    pin_right,
    zoom_at,
    zoom_factor,
)
from candlelab.models.indicator import IndicatorConfig
from candlelab.models.market import Bar, Viewport


def default_indicators() -> list[IndicatorConfig]:
    return [
        IndicatorConfig(kind="SMA", period=20),
        IndicatorConfig(kind="EMA", period=20, enabled=False),
        IndicatorConfig(kind="RSI", period=14),
        IndicatorConfig(kind="MACD", fast=12, slow=26, signal=9),
    ]


class ChartSession:
    def __init__(
        self,
        bars: list[Bar] | None = None,
        timeframe: str | None = None,
        tie_break_rng: RandomSource | None = None,
        history_limit: int | None = None,
    ):
        self.history = EditHistory(history_limit)
        self.indicators: dict[str, IndicatorConfig] = {c.kind: c for c in default_indicators()}
        self.granularity = granularity_for(timeframe or settings.base_timeframe)
        self.timeframe = timeframe_label(self.granularity)
        self._rng = tie_break_rng or Mulberry32(entropy_seed())
        self._bars: list[Bar] = []
        self.viewport = Viewport(start=0.0, count=settings.default_view_count)

        if bars is None:
            self.reset()
        else:
            self._bars = [b.model_copy() for b in bars]
            self.viewport = self._right_edge_viewport()

    # --- Derived data ---

    @property
    def bars(self) -> list[Bar]:
        return self._bars

    def display_bars(self) -> list[Bar]:
        return aggregate(self._bars, self.granularity)

    def indicator_series(self) -> dict[str, dict[str, list[float | None]]]:
        """All enabled indicators over the display closes, keyed by kind."""
        engine = IndicatorEngine(self.display_bars())
        return {
            kind: engine.compute_series(kind, cfg.params)
            for kind, cfg in self.indicators.items()
            if cfg.enabled
        }

    def transform(self, width: float, height: float) -> ViewportTransform:
        """Pixel transform covering the display bars and the visible overlays."""
        display = self.display_bars()
        series = self.indicator_series()
        overlays = [
            series[kind]["value"]
            for kind, cfg in self.indicators.items()
            if cfg.enabled and cfg.is_overlay
        ]
        return ViewportTransform.for_bars(self.viewport, width, height, display, overlays)

    # --- Data management ---

    def _display_length(self) -> int:
        return len(self._bars) // self.granularity

    def _right_edge_viewport(self) -> Viewport:
        length = self._display_length()
        count = max(settings.min_view_count, self.viewport.count)
        return clamp_viewport(Viewport(start=float(max(0, length - count)), count=count), length)

    def reset(self) -> None:
        """Regenerate the reproducible default series and show its newest bars."""
        self._bars = generate_bars(
            settings.default_bar_count,
            start=settings.start_price,
            mu=settings.drift,
            sigma=settings.volatility,
            rng=Mulberry32(settings.default_seed),
            substeps=settings.substeps,
        )
        self.history.clear()
        self.viewport = self._right_edge_viewport()
        logger.info(f"Session reset: {len(self._bars)} bars (seed={settings.default_seed})")

    def add_bars(self, count: int = 1, rng: RandomSource | int | None = None) -> None:
        if count <= 0:
            return
        old_length = self._display_length()
        self._commit(append_bars(self._bars, count, rng))
        self.viewport = pin_right(self.viewport, old_length, self._display_length())
        logger.info(f"Added {count} bars (total {len(self._bars)})")

    def remove_bar(self) -> None:
        if len(self._bars) <= 1:
            return
        old_length = self._display_length()
        self._commit([b.model_copy() for b in self._bars[:-1]])
        self.viewport = pin_right(self.viewport, old_length, self._display_length())
        logger.info(f"Removed last bar (total {len(self._bars)})")

    def set_granularity(self, granularity: int) -> None:
        new_g = max(1, int(granularity))
        self.timeframe = timeframe_label(new_g)
        if new_g == self.granularity:
            return
        new_length = len(self._bars) // new_g
        self.viewport = rescale_viewport(self.viewport, self.granularity, new_g, new_length)
        self.granularity = new_g
        logger.info(f"Granularity set to {new_g} ({new_length} display bars)")

    def set_timeframe(self, timeframe: str) -> None:
        try:
            g = granularity_for(timeframe)
        except ValueError as e:
            logger.warning(f"Ignoring timeframe change: {e}")
            return
        self.set_granularity(g)

    def set_indicator(self, kind: str, **changes: Any) -> IndicatorConfig | None:
        """Update one indicator's settings. Out-of-range periods are clamped."""
        key = kind.upper()
        current = self.indicators.get(key)
        if current is None:
            logger.warning(f"Unknown indicator: {kind}")
            return None
        updated = IndicatorConfig(**{**current.model_dump(), **changes, "kind": key})
        self.indicators[key] = updated
        return updated

    # --- Viewport ---

    def pan(self, dx_pixels: float, width: float) -> None:
        step = ViewportTransform(self.viewport, width, 0.0).step
        self.viewport = pan(self.viewport, dx_pixels, step, self._display_length())

    def zoom(self, anchor_x: float, delta_y: float, width: float) -> None:
        self.viewport = zoom_at(
            self.viewport,
            anchor_x,
            zoom_factor(delta_y),
            ViewportTransform(self.viewport, width, 0.0),
            self._display_length(),
        )

    # --- Editing ---

    def begin_gesture(self) -> None:
        self.history.begin_gesture()

    def end_gesture(self) -> None:
        self.history.end_gesture()

    def _commit(self, new_bars: list[Bar]) -> bool:
        """Swap in a changed base sequence, recording the old one for undo."""
        if new_bars == self._bars:
            return False
        self.history.record(self._bars)
        self._bars = new_bars
        return True

    def edit_bar(self, display_index: int, field: EditField, value: float) -> bool:
        """Edit a field of a display bar. Returns True if the base bars changed."""
        new_bars = edit_aggregate_field(
            self._bars, self.granularity, display_index, field, value, rng=self._rng
        )
        return self._commit(new_bars)

    def edit_indicator(self, kind: str, display_index: int, value: float) -> bool:
        """Drag a moving-average point. Returns True if the base bars changed."""
        cfg = self.indicators.get(kind.upper())
        if cfg is None or not cfg.is_overlay:
            logger.warning(f"Indicator {kind} is not editable")
            return False
        new_bars = edit_indicator_point(
            self._bars, cfg.kind, cfg.period, display_index, value, granularity=self.granularity
        )
        return self._commit(new_bars)

    def undo(self) -> bool:
        restored = self.history.undo(self._bars)
        if restored is None:
            return False
        self._bars = restored
        self.viewport = clamp_viewport(self.viewport, self._display_length())
        logger.info("Undo")
        return True

    def redo(self) -> bool:
        restored = self.history.redo(self._bars)
        if restored is None:
            return False
        self._bars = restored
        self.viewport = clamp_viewport(self.viewport, self._display_length())
        logger.info("Redo")
        return True
