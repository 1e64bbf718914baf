from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ProcessingProfile(str, Enum):
    """Speed/quality trade-off for screenshot re-encoding."""

    FAST = "fast"
    BALANCED = "balanced"
    HIGH_FIDELITY = "high-fidelity"


class ImageErrorKind(str, Enum):
    INVALID_URL = "invalid_url"
    DOWNLOAD_TIMEOUT = "download_timeout"
    DOWNLOAD_FAILED = "download_failed"
    INVALID_CONTENT_TYPE = "invalid_content_type"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    DECODE_FAILED = "decode_failed"
    ENCODE_FAILED = "encode_failed"

    @property
    def is_download_error(self) -> bool:
        return self not in (ImageErrorKind.DECODE_FAILED, ImageErrorKind.ENCODE_FAILED)


class ImageProcessingOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_width: int = Field(..., gt=0)
    max_height: int = Field(..., gt=0)
    quality: float | None = Field(None, gt=0, le=1)
    profile: ProcessingProfile = ProcessingProfile.HIGH_FIDELITY


class ProcessedImage(BaseModel):
    """A downloaded screenshot, oriented to landscape and re-encoded."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    format: Literal["jpeg"] = "jpeg"
    is_rotated: bool = False


class ImageFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    kind: ImageErrorKind
    message: str = ""
