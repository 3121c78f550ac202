"""Shared test fixtures for candlelab tests."""

import pytest

from candlelab.models.market import Bar


def make_bar(index=0, open=100.0, high=None, low=None, close=None) -> Bar:
    close = open if close is None else close
    high = max(open, close) + 1.0 if high is None else high
    low = min(open, close) - 1.0 if low is None else low
    return Bar(index=index, open=open, high=high, low=low, close=close)


def make_chain(closes, start=100.0, wick=1.0) -> list[Bar]:
    """Continuous bars: each opens at the previous close."""
    bars = []
    prev = start
    for i, c in enumerate(closes):
        bars.append(make_bar(i, open=prev, high=max(prev, c) + wick, low=min(prev, c) - wick, close=c))
        prev = c
    return bars


def assert_ordered(bars):
    for b in bars:
        assert b.low <= min(b.open, b.close) <= max(b.open, b.close) <= b.high, b


class ScriptedRandom:
    """Random source that replays fixed values."""

    def __init__(self, *values):
        self.values = list(values) or [0.0]
        self.calls = 0

    def random(self) -> float:
        v = self.values[self.calls % len(self.values)]
        self.calls += 1
        return v


@pytest.fixture
def ten_bars():
    """10 continuous base bars, two groups of 5 at g=5."""
    return make_chain([101, 102, 100, 103, 104, 102, 99, 101, 100, 98])


@pytest.fixture
def tied_group():
    """5 bars where bars 1 and 3 share the group high (110) and bars 0 and 4 share the low (90)."""
    return [
        make_bar(0, open=100, high=105, low=90, close=101),
        make_bar(1, open=101, high=110, low=95, close=102),
        make_bar(2, open=102, high=106, low=96, close=103),
        make_bar(3, open=103, high=110, low=97, close=104),
        make_bar(4, open=104, high=108, low=90, close=100),
    ]
