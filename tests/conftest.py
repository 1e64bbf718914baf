"""Shared fixtures: in-memory images and mocked HTTP transports."""

from __future__ import annotations

import io
from typing import Callable

import httpx
import pytest
from PIL import Image

from templog.services.image_processor import ImageProcessor
from templog.services.record_store import record_store

ImageFactory = Callable[..., bytes]


def make_image_bytes(width: int, height: int, fmt: str = "PNG", color=(200, 40, 40)) -> bytes:
    mode = "RGBA" if fmt == "PNG" and len(color) == 4 else "RGB"
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_bytes() -> ImageFactory:
    return make_image_bytes


@pytest.fixture
def image_response() -> Callable[..., httpx.Response]:
    def _build(data: bytes, content_type: str = "image/png", status_code: int = 200) -> httpx.Response:
        return httpx.Response(status_code, headers={"content-type": content_type}, content=data)

    return _build


@pytest.fixture
def make_processor():
    """Build an ImageProcessor whose HTTP traffic goes to *handler*."""

    def _build(handler, **kwargs) -> ImageProcessor:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        kwargs.setdefault("retry_delay", 0.0)
        return ImageProcessor(client=client, **kwargs)

    return _build


@pytest.fixture(autouse=True)
def _reset_store():
    record_store.clear()
    yield
    record_store.clear()
