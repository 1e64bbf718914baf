from __future__ import annotations

import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


def round_half_up(value: float) -> int:
    """Round to the nearest pixel; halves go up."""

    return int(math.floor(value + 0.5))


class Resampling(str, Enum):
    """How hard the backend should try when scaling pixels."""

    NEAREST = "nearest"
    BILINEAR = "bilinear"
    HIGH_QUALITY = "high_quality"


class RasterBackend(ABC):
    """Abstract interface for an imaging library.

    The screenshot pipeline only needs four things from it: turn bytes into
    an image, report its size, draw it (optionally rotated 90 degrees
    clockwise) into a canvas of a given size, and encode that canvas as JPEG.
    Image and canvas objects are opaque to callers.
    """

    name: str = "abstract"

    @abstractmethod
    def decode(self, data: bytes) -> Any:
        """Parse encoded image bytes. Raises on corrupt or unsupported data."""

    @abstractmethod
    def size(self, image: Any) -> tuple[int, int]:
        """Return ``(width, height)`` in pixels."""

    @abstractmethod
    def render(
        self,
        image: Any,
        *,
        width: int,
        height: int,
        rotate: bool,
        resampling: Resampling,
    ) -> Any:
        """Draw *image* into a fresh ``width`` x ``height`` canvas.

        With ``rotate`` the image is turned 90 degrees clockwise about the
        canvas centre and scaled by ``min(width / src_h, height / src_w)``.
        """

    @abstractmethod
    def encode_jpeg(
        self,
        canvas: Any,
        *,
        quality: float,
        progressive: bool = False,
        optimize: bool = False,
    ) -> bytes:
        """Encode *canvas* as JPEG; ``quality`` is a 0-1 factor."""
