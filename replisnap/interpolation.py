"""Snapshot buffers and interpolation between server snapshots."""

from __future__ import annotations

import abc
import copy
import dataclasses
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from replisnap.vec2 import lerp

SNAPSHOT_BUFFER_CAPACITY = 10

T = TypeVar("T")


class Interpolate(abc.ABC):
    """A value that can be blended with another value of the same type."""

    @abc.abstractmethod
    def interpolate(self, other: Any, t: float) -> Any:
        """Return the value a fraction ``t`` of the way from ``self`` to ``other``."""


def derive_interpolate(cls: type) -> type:
    """Class decorator giving a dataclass an ``interpolate`` that lerps every field."""
    if not isinstance(cls, type) or not dataclasses.is_dataclass(cls):
        raise TypeError("expected a struct")
    names = [f.name for f in dataclasses.fields(cls) if f.init]

    def interpolate(self, other, t):
        return dataclasses.replace(
            self,
            **{name: lerp(getattr(self, name), getattr(other, name), t) for name in names},
        )

    interpolate.__qualname__ = f"{cls.__qualname__}.interpolate"
    interpolate.__doc__ = "Interpolate every field towards ``other`` by ``t``."
    cls.interpolate = interpolate
    abc.update_abstractmethods(cls)
    if not issubclass(cls, Interpolate):
        Interpolate.register(cls)
    return cls


@dataclass
class Snapshot(Generic[T]):
    """A component value as seen at a server tick."""

    tick: int
    value: T


@dataclass
class SnapshotBuffer(Generic[T]):
    """The most recent snapshots of one component, oldest first."""

    buffer: deque = field(default_factory=lambda: deque(maxlen=SNAPSHOT_BUFFER_CAPACITY))
    time_since_last_snapshot: float = 0.0
    latest_snapshot_tick: int = 0

    def insert(self, element: T, tick: int) -> None:
        """Append a snapshot, dropping the oldest once the buffer is full."""
        while len(self.buffer) >= SNAPSHOT_BUFFER_CAPACITY:
            self.buffer.popleft()
        self.buffer.append(element)
        self.time_since_last_snapshot = 0.0
        self.latest_snapshot_tick = tick

    def latest_snapshot(self) -> T:
        """A copy of the newest snapshot."""
        if not self.buffer:
            raise LookupError("snapshot buffer is empty")
        return copy.copy(self.buffer[-1])

    def age(self) -> float:
        """Seconds elapsed since the last snapshot arrived."""
        return self.time_since_last_snapshot

    def __len__(self) -> int:
        return len(self.buffer)


@dataclass
class SnapshotInterpolationConfig:
    """Interpolation settings; ``max_tick_rate`` should match the server's."""

    max_tick_rate: int

    def __post_init__(self) -> None:
        if self.max_tick_rate <= 0:
            raise ValueError("max_tick_rate must be positive")

    def tick_duration(self) -> float:
        """Seconds between two server ticks."""
        return 1.0 / self.max_tick_rate


def interpolate_snapshot(
    buffer: SnapshotBuffer, delta_secs: float, config: SnapshotInterpolationConfig
) -> Optional[Any]:
    """Blend the buffered snapshots for this frame and advance the buffer's clock.

    Returns None, leaving the buffer untouched, when there is nothing to blend.
    """
    if len(buffer) < 2:
        return None
    tick_duration = config.tick_duration()
    elapsed = buffer.time_since_last_snapshot
    if elapsed > tick_duration + delta_secs:
        return None
    t = min(max(elapsed / tick_duration, 0.0), 1.0)
    value = buffer.buffer[0].interpolate(copy.copy(buffer.buffer[1]), t)
    buffer.time_since_last_snapshot += delta_secs
    return value


def advance_predicted(buffer: SnapshotBuffer, delta_secs: float) -> None:
    """Advance the snapshot clock of a predicted component."""
    buffer.time_since_last_snapshot += delta_secs