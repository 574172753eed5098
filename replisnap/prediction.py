"""Client-side prediction: event history and replay onto server snapshots."""

from __future__ import annotations

import abc
from collections import deque
from dataclasses import dataclass
from typing import Any, Generic, Iterator, TypeVar

from replisnap.interpolation import Interpolate, SnapshotBuffer

E = TypeVar("E")


class Predict(Interpolate):
    """A component that an event can mutate, as needed for prediction."""

    @abc.abstractmethod
    def apply_event(self, event: Any, delta_time: float, context: Any) -> None:
        """Mutate this component in place by applying ``event`` over ``delta_time``."""


@dataclass
class EventSnapshot(Generic[E]):
    """An event recorded with the tick and frame time it was issued at."""

    value: E
    tick: int
    delta_time: float


class PredictedEventHistory(Generic[E]):
    """Locally issued events kept for replay after a server correction."""

    def __init__(self) -> None:
        self._events: deque[EventSnapshot[E]] = deque()

    def insert(self, value: E, tick: int, delta_time: float) -> PredictedEventHistory[E]:
        """Record an event."""
        self._events.append(EventSnapshot(value, tick, delta_time))
        return self

    def remove_stale(self, latest_server_snapshot_tick: int) -> PredictedEventHistory[E]:
        """Drop events before the first one at or after the given server tick."""
        first = next(
            (i for i, snap in enumerate(self._events) if snap.tick >= latest_server_snapshot_tick),
            None,
        )
        if first is None:
            self._events.clear()
        else:
            for _ in range(first):
                self._events.popleft()
        return self

    def predict(self, latest_server_snapshot_tick: int) -> Iterator[EventSnapshot[E]]:
        """Drop stale events and iterate over those still to be replayed."""
        self.remove_stale(latest_server_snapshot_tick)
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[EventSnapshot[E]]:
        return iter(self._events)


def predict_component(buffer: SnapshotBuffer, history: PredictedEventHistory, context: Any) -> Any:
    """Replay pending events on top of the latest server snapshot and return the result."""
    corrected = buffer.latest_snapshot()
    for snap in history.predict(buffer.latest_snapshot_tick):
        corrected.apply_event(snap.value, snap.delta_time, context)
    return corrected