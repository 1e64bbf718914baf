from .base import RasterBackend, Resampling, round_half_up
from .pillow_backend import PillowBackend
from .registry import get_backend

__all__ = [
    "PillowBackend",
    "RasterBackend",
    "Resampling",
    "get_backend",
    "round_half_up",
]
