"""Undo/redo over full base-sequence snapshots.

A drag gesture is bracketed by begin_gesture()/end_gesture(); only the first
record() inside a gesture stores a snapshot, so the whole drag undoes as one
step. Outside a gesture every record() is its own step.
"""

from collections import deque

from candlelab.config import settings
from candlelab.models.market import Bar


def _snapshot(bars: list[Bar]) -> list[Bar]:
    return [b.model_copy() for b in bars]


class EditHistory:
    def __init__(self, limit: int | None = None):
        self.limit = max(1, int(limit if limit is not None else settings.history_limit))
        self._undo: deque[list[Bar]] = deque(maxlen=self.limit)
        self._redo: deque[list[Bar]] = deque(maxlen=self.limit)
        self._in_gesture = False
        self._gesture_recorded = False

    @property
    def in_gesture(self) -> bool:
        return self._in_gesture

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def begin_gesture(self) -> None:
        self._in_gesture = True
        self._gesture_recorded = False

    def end_gesture(self) -> None:
        self._in_gesture = False
        self._gesture_recorded = False

    def record(self, bars: list[Bar]) -> bool:
        """Store the pre-edit state. Returns False when the gesture already has one."""
        if self._in_gesture and self._gesture_recorded:
            return False
        self._undo.append(_snapshot(bars))
        self._redo.clear()
        if self._in_gesture:
            self._gesture_recorded = True
        return True

    def undo(self, current: list[Bar]) -> list[Bar] | None:
        if not self._undo:
            return None
        self._redo.append(_snapshot(current))
        return self._undo.pop()

    def redo(self, current: list[Bar]) -> list[Bar] | None:
        if not self._redo:
            return None
        self._undo.append(_snapshot(current))
        return self._redo.pop()

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
        self._gesture_recorded = False
