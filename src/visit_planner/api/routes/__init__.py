"""Route group exports."""

from . import distance, health, optimize

__all__ = ["optimize", "distance", "health"]
