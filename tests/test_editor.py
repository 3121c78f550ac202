"""Tests for candlelab.engine.editor — edit propagation onto base bars."""

import pytest

from candlelab.engine.aggregator import aggregate
from candlelab.engine.editor import edit_aggregate_field, edit_indicator_point
from candlelab.engine.generator import generate_bars
from candlelab.engine.indicators import ema, sma
from candlelab.engine.random_source import Mulberry32
from tests.conftest import ScriptedRandom, assert_ordered, make_bar, make_chain


# ── open / close ────────────────────────────────────────────────────

class TestOpenClose:
    def test_open_round_trip(self, ten_bars):
        out = edit_aggregate_field(ten_bars, 5, 1, "open", 97.37)
        assert aggregate(out, 5)[1].open == 97.37
        assert_ordered(out)

    def test_open_repairs_previous_close(self, ten_bars):
        out = edit_aggregate_field(ten_bars, 5, 1, "open", 110.0)
        assert out[5].open == 110.0
        assert out[4].close == 110.0
        assert out[4].high >= 110.0
        assert out[5].high >= 110.0
        assert_ordered(out)

    def test_open_first_group_has_no_previous(self, ten_bars):
        out = edit_aggregate_field(ten_bars, 5, 0, "open", 95.5)
        assert out[0].open == 95.5
        assert out[0].low <= 95.5
        assert out[1:] == ten_bars[1:]

    def test_close_round_trip(self, ten_bars):
        out = edit_aggregate_field(ten_bars, 5, 0, "close", 88.21)
        assert aggregate(out, 5)[0].close == 88.21
        assert_ordered(out)

    def test_close_repairs_next_open(self, ten_bars):
        out = edit_aggregate_field(ten_bars, 5, 0, "close", 88.0)
        assert out[4].close == 88.0
        assert out[5].open == 88.0
        assert out[5].low <= 88.0
        assert_ordered(out)

    def test_close_last_bar_has_no_next(self, ten_bars):
        out = edit_aggregate_field(ten_bars, 5, 1, "close", 120.0)
        assert out[9].close == 120.0
        assert out[:9] == ten_bars[:9]

    def test_only_one_neighbour_touched(self, ten_bars):
        out = edit_aggregate_field(ten_bars, 1, 4, "close", 150.0)
        changed = [i for i, (a, b) in enumerate(zip(ten_bars, out)) if a != b]
        assert changed == [4, 5]

    def test_input_not_mutated(self, ten_bars):
        before = [b.model_copy() for b in ten_bars]
        edit_aggregate_field(ten_bars, 5, 0, "close", 50.0)
        assert ten_bars == before


# ── high ────────────────────────────────────────────────────────────

class TestHigh:
    def test_raise_picks_tied_bar(self, tied_group):
        # candidates are bars 1 and 3; 0.75 selects the second
        out = edit_aggregate_field(tied_group, 5, 0, "high", 115.0, rng=ScriptedRandom(0.75))
        assert out[3].high == 115.0
        assert out[1].high == 110.0
        assert aggregate(out, 5)[0].high == 115.0

    def test_raise_picks_first_tied_bar(self, tied_group):
        out = edit_aggregate_field(tied_group, 5, 0, "high", 115.0, rng=ScriptedRandom(0.1))
        assert out[1].high == 115.0
        assert out[3].high == 110.0

    def test_lower_feasible(self, tied_group):
        out = edit_aggregate_field(tied_group, 5, 0, "high", 104.5, rng=ScriptedRandom(0.0))
        assert aggregate(out, 5)[0].high == 104.5
        assert all(b.high <= 104.5 for b in out)
        assert_ordered(out)

    def test_lower_forces_chosen_bar(self, tied_group):
        # every body max is <= 104.5, so all five bars are candidates; 0.5 -> bar 2
        out = edit_aggregate_field(tied_group, 5, 0, "high", 104.5, rng=ScriptedRandom(0.5))
        assert out[2].high == 104.5
        assert out[0].high == 104.5  # clamped from 105
        assert out[4].high == 104.5  # clamped from 108

    def test_lower_below_floor_clamps(self, tied_group):
        floor = max(max(b.open, b.close) for b in tied_group)
        out = edit_aggregate_field(tied_group, 5, 0, "high", 50.0, rng=ScriptedRandom(0.3))
        assert aggregate(out, 5)[0].high == floor
        assert_ordered(out)

    def test_single_bar(self):
        bars = [make_bar(0, open=100, high=103, low=98, close=101)]
        out = edit_aggregate_field(bars, 1, 0, "high", 100.5)
        assert out[0].high == 101
        out = edit_aggregate_field(bars, 1, 0, "high", 107)
        assert out[0].high == 107


# ── low ─────────────────────────────────────────────────────────────

class TestLow:
    def test_lower_picks_tied_bar(self, tied_group):
        # bars 0 and 4 share low 90
        out = edit_aggregate_field(tied_group, 5, 0, "low", 85.0, rng=ScriptedRandom(0.9))
        assert out[4].low == 85.0
        assert out[0].low == 90.0
        assert aggregate(out, 5)[0].low == 85.0

    def test_raise_feasible(self, tied_group):
        out = edit_aggregate_field(tied_group, 5, 0, "low", 99.0, rng=ScriptedRandom(0.0))
        assert aggregate(out, 5)[0].low == 99.0
        assert all(b.low >= 99.0 for b in out)
        assert_ordered(out)

    def test_raise_above_ceiling_clamps(self, tied_group):
        ceiling = min(min(b.open, b.close) for b in tied_group)
        out = edit_aggregate_field(tied_group, 5, 0, "low", 150.0, rng=ScriptedRandom(0.6))
        assert aggregate(out, 5)[0].low == ceiling
        assert_ordered(out)


# ── no-ops ──────────────────────────────────────────────────────────

class TestNoOps:
    def test_group_out_of_range(self, ten_bars):
        assert edit_aggregate_field(ten_bars, 5, 2, "close", 1.0) == ten_bars
        assert edit_aggregate_field(ten_bars, 5, -1, "open", 1.0) == ten_bars

    def test_partial_group_not_addressable(self, ten_bars):
        assert edit_aggregate_field(ten_bars[:8], 5, 1, "high", 200.0) == ten_bars[:8]

    def test_unknown_field(self, ten_bars):
        assert edit_aggregate_field(ten_bars, 1, 0, "volume", 1.0) == ten_bars


# ── randomized invariants ───────────────────────────────────────────

class TestInvariants:
    @pytest.mark.parametrize("field", ["open", "high", "low", "close"])
    @pytest.mark.parametrize("g", [1, 3, 5])
    def test_ordering_survives_edits(self, field, g):
        bars = generate_bars(30, rng=7)
        rng = Mulberry32(3)
        for gi in range(len(bars) // g):
            target = 80 + 40 * rng.random()
            bars = edit_aggregate_field(bars, g, gi, field, target, rng=rng)
            assert_ordered(bars)

    @pytest.mark.parametrize("g", [2, 4])
    def test_high_low_round_trip(self, g):
        bars = generate_bars(24, rng=11)
        rng = Mulberry32(5)
        for gi in range(len(bars) // g):
            start, end = gi * g, gi * g + g - 1
            group = bars[start : end + 1]
            target = aggregate(bars, g)[gi].high + 0.5 - rng.random()
            expected = max(target, max(max(b.open, b.close) for b in group))
            bars = edit_aggregate_field(bars, g, gi, "high", target, rng=rng)
            assert aggregate(bars, g)[gi].high == expected


# ── indicator points ────────────────────────────────────────────────

class TestIndicatorPoint:
    def test_sma_point(self, ten_bars):
        out = edit_indicator_point(ten_bars, "SMA", 3, 5, 105.0)
        closes = [b.close for b in out]
        assert sma(closes, 3)[5] == pytest.approx(105.0)
        assert out[6].open == out[5].close
        assert_ordered(out)

    def test_sma_only_last_bar_changes_close(self, ten_bars):
        out = edit_indicator_point(ten_bars, "SMA", 3, 5, 105.0)
        assert [b.close for b in out[:5]] == [b.close for b in ten_bars[:5]]
        assert [b.close for b in out[6:]] == [b.close for b in ten_bars[6:]]

    def test_sma_warmup_is_noop(self, ten_bars):
        assert edit_indicator_point(ten_bars, "SMA", 3, 1, 105.0) == ten_bars

    def test_ema_point(self, ten_bars):
        out = edit_indicator_point(ten_bars, "EMA", 3, 6, 96.0)
        closes = [b.close for b in out]
        assert ema(closes, 3)[6] == pytest.approx(96.0)
        assert out[7].open == out[6].close
        assert_ordered(out)

    def test_ema_needs_previous_value(self, ten_bars):
        # ema(3) first defined at index 2, so index 2 has no defined predecessor
        assert edit_indicator_point(ten_bars, "EMA", 3, 2, 96.0) == ten_bars

    def test_aggregated_point_moves_group_close(self, ten_bars):
        bars = ten_bars + make_chain([97, 99, 101, 100, 102], start=98)[:5]
        for i, b in enumerate(bars):
            b.index = i
        out = edit_indicator_point(bars, "SMA", 2, 2, 101.0, granularity=5)
        closes = [b.close for b in aggregate(out, 5)]
        assert sma(closes, 2)[2] == pytest.approx(101.0)
        assert out[14].close != bars[14].close
        assert out[:14] == bars[:14]

    def test_out_of_range(self, ten_bars):
        assert edit_indicator_point(ten_bars, "SMA", 3, 10, 1.0) == ten_bars
        assert edit_indicator_point(ten_bars, "EMA", 3, -1, 1.0) == ten_bars

    def test_unsupported_kind(self, ten_bars):
        assert edit_indicator_point(ten_bars, "RSI", 14, 5, 50.0) == ten_bars
