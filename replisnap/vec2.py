"""Two-dimensional float vectors and linear interpolation helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any


@dataclass(frozen=True)
class Vec2:
    """An immutable 2D vector of floats."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vec2) -> Vec2:
        if not isinstance(other, Vec2):
            return NotImplemented
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        if not isinstance(other, Vec2):
            return NotImplemented
        return Vec2(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vec2:
        if isinstance(scalar, bool) or not isinstance(scalar, Real):
            return NotImplemented
        return Vec2(self.x * scalar, self.y * scalar)

    def length(self) -> float:
        """Euclidean length of the vector."""
        return math.hypot(self.x, self.y)

    def normalize_or_zero(self) -> Vec2:
        """Unit vector in the same direction, or the zero vector if that is undefined."""
        length = self.length()
        if length == 0.0 or not math.isfinite(length):
            return Vec2()
        return Vec2(self.x / length, self.y / length)

    def lerp(self, other: Vec2, t: float) -> Vec2:
        """Linear interpolation from this vector towards ``other``."""
        return self + (other - self) * t


def lerp(a: Any, b: Any, t: float) -> Any:
    """Interpolate two values, using their own ``lerp`` method when they have one."""
    method = getattr(a, "lerp", None)
    if callable(method):
        return method(b, t)
    return a + (b - a) * t