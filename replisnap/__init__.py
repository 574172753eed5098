"""Snapshot interpolation and client-side prediction for replicated entities."""

__version__ = "0.2.6"
__all__ = ["vec2", "interpolation", "prediction", "world", "demos"]