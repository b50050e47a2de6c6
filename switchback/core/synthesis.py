"""SynthesisGuard — queues live input while the engine types corrections.

States:
    IDLE          — events are processed normally
    SYNTHESIZING  — the executor is emitting keystrokes; live events queue up
    REPLAYING     — synthesis ended, queued events are being replayed; events
                    arriving now are appended so arrival order is preserved
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from enum import Enum, auto
from typing import Any, Callable

import switchback.log  # registers TRACE level and logger.trace()

logger = logging.getLogger(__name__)


class SynthesisState(Enum):
    IDLE = auto()
    SYNTHESIZING = auto()
    REPLAYING = auto()


# Allowed transitions: {from_state: {event_name: to_state}}
TRANSITIONS: dict[SynthesisState, dict[str, SynthesisState]] = {
    SynthesisState.IDLE: {
        "begin": SynthesisState.SYNTHESIZING,
    },
    SynthesisState.SYNTHESIZING: {
        "end": SynthesisState.REPLAYING,
        "abort": SynthesisState.IDLE,
    },
    SynthesisState.REPLAYING: {
        "begin": SynthesisState.SYNTHESIZING,
        "drained": SynthesisState.IDLE,
        "abort": SynthesisState.IDLE,
    },
}


def can_transition(from_state: SynthesisState, event_name: str) -> bool:
    return event_name in TRANSITIONS.get(from_state, {})


def next_state(from_state: SynthesisState, event_name: str) -> SynthesisState:
    try:
        return TRANSITIONS[from_state][event_name]
    except KeyError:
        raise ValueError(f"No transition from {from_state!r} on event {event_name!r}")


class SynthesisGuard:
    """Serializes the engine's own output against live input.

    *replay* is called, outside the guard's lock, for every queued event once
    synthesis ends.
    """

    def __init__(self, replay: Callable[[Any], None] | None = None):
        self._replay = replay
        self._state = SynthesisState.IDLE
        self._queue: deque = deque()
        self._lock = threading.Lock()

    def set_replay(self, replay: Callable[[Any], None]) -> None:
        self._replay = replay

    @property
    def state(self) -> SynthesisState:
        with self._lock:
            return self._state

    @property
    def synthesizing(self) -> bool:
        return self.state is SynthesisState.SYNTHESIZING

    @property
    def busy(self) -> bool:
        """True unless IDLE: live events must be captured."""
        return self.state is not SynthesisState.IDLE

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def _transition(self, event_name: str) -> bool:
        if not can_transition(self._state, event_name):
            logger.trace("Ignored synthesis transition %s in %s", event_name, self._state.name)  # type: ignore[attr-defined]
            return False
        self._state = next_state(self._state, event_name)
        return True

    def begin(self) -> bool:
        """Enter SYNTHESIZING.  Returns False if a synthesis is already running."""
        with self._lock:
            return self._transition("begin")

    def capture(self, event: Any) -> bool:
        """Queue *event* unless IDLE.  Returns True if it was queued."""
        with self._lock:
            if self._state is SynthesisState.IDLE:
                return False
            self._queue.append(event)
            logger.trace("Queued event during synthesis (%d pending)", len(self._queue))  # type: ignore[attr-defined]
            return True

    def end(self) -> None:
        """Leave SYNTHESIZING and replay queued events in arrival order."""
        with self._lock:
            if not self._transition("end"):
                return
        self._drain()

    def _drain(self) -> None:
        while True:
            with self._lock:
                if self._state is not SynthesisState.REPLAYING:
                    # A replayed event started a new correction; the rest waits
                    return
                if not self._queue:
                    self._transition("drained")
                    return
                event = self._queue.popleft()
            if self._replay is None:
                continue
            try:
                self._replay(event)
            except Exception:
                logger.exception("Replay of queued event failed")

    def abort(self) -> list:
        """Return to IDLE without replaying; returns the unprocessed events."""
        with self._lock:
            self._transition("abort")
            events = list(self._queue)
            self._queue.clear()
            return events
