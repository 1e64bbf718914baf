from __future__ import annotations

from functools import lru_cache

from templog.config import get_settings

from .base import RasterBackend
from .pillow_backend import PillowBackend

_BACKENDS: dict[str, type[RasterBackend]] = {
    "pillow": PillowBackend,
}


@lru_cache()
def get_backend() -> RasterBackend:
    settings = get_settings()
    backend_key = settings.raster_backend.lower()
    if backend_key not in _BACKENDS:
        raise ValueError(f"Unsupported raster backend: {backend_key}")
    return _BACKENDS[backend_key]()
