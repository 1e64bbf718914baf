"""Tests for the Pillow raster backend."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from templog.services.raster import PillowBackend, Resampling, get_backend, round_half_up

from .conftest import make_image_bytes


@pytest.fixture
def backend() -> PillowBackend:
    return PillowBackend()


def test_registry_returns_pillow() -> None:
    assert get_backend().name == "pillow"


def test_decode_flattens_alpha(backend: PillowBackend) -> None:
    image = backend.decode(make_image_bytes(8, 4, fmt="PNG", color=(0, 0, 0, 0)))

    assert image.mode == "RGB"
    assert backend.size(image) == (8, 4)
    # transparent pixels land on white
    assert image.getpixel((0, 0)) == (255, 255, 255)


def test_decode_rejects_garbage(backend: PillowBackend) -> None:
    with pytest.raises(Exception):
        backend.decode(b"\x00\x01\x02")


def test_render_rotates_clockwise(backend: PillowBackend) -> None:
    # portrait: top half red, bottom half blue
    src = Image.new("RGB", (40, 80), (0, 0, 255))
    src.paste((255, 0, 0), (0, 0, 40, 40))

    canvas = backend.render(src, width=80, height=40, rotate=True, resampling=Resampling.NEAREST)

    assert canvas.size == (80, 40)
    # after a clockwise quarter turn the old top sits on the right
    assert canvas.getpixel((70, 20)) == (255, 0, 0)
    assert canvas.getpixel((10, 20)) == (0, 0, 255)


def test_render_without_rotation_resizes(backend: PillowBackend) -> None:
    src = Image.new("RGB", (300, 300), (10, 20, 30))

    canvas = backend.render(src, width=100, height=100, rotate=False, resampling=Resampling.HIGH_QUALITY)

    assert canvas.size == (100, 100)


def test_encode_jpeg(backend: PillowBackend) -> None:
    canvas = Image.new("RGB", (20, 10), (120, 120, 120))

    data = backend.encode_jpeg(canvas, quality=0.6)

    with Image.open(io.BytesIO(data)) as decoded:
        assert decoded.format == "JPEG"
        assert decoded.size == (20, 10)


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(66.6) == 67
    assert round_half_up(0.49) == 0


def test_rotated_render_fills_canvas_on_half_pixel(backend: PillowBackend) -> None:
    # 1x4 turned into a 10x3 box scales to 10 x 2.5, which must round up to 3
    src = Image.new("RGB", (1, 4), (0, 0, 0))

    canvas = backend.render(src, width=10, height=3, rotate=True, resampling=Resampling.NEAREST)

    assert canvas.size == (10, 3)
    assert canvas.getcolors() == [(30, (0, 0, 0))]


def test_decode_applies_exif_orientation(backend: PillowBackend) -> None:
    # stored landscape, flagged "rotate 90 CW to display"
    exif = Image.Exif()
    exif[0x0112] = 6
    buffer = io.BytesIO()
    Image.new("RGB", (80, 40), (10, 200, 10)).save(buffer, format="JPEG", exif=exif.tobytes())

    image = backend.decode(buffer.getvalue())

    assert backend.size(image) == (40, 80)
