from __future__ import annotations

import io

from PIL import Image, ImageOps

from .base import RasterBackend, Resampling, round_half_up

_RESAMPLE = {
    Resampling.NEAREST: Image.Resampling.NEAREST,
    Resampling.BILINEAR: Image.Resampling.BILINEAR,
    Resampling.HIGH_QUALITY: Image.Resampling.LANCZOS,
}

_BACKGROUND = (255, 255, 255)


class PillowBackend(RasterBackend):
    name = "pillow"

    def decode(self, data: bytes) -> Image.Image:
        with Image.open(io.BytesIO(data)) as im:
            im.load()
            # Phone cameras store portrait shots sideways plus an EXIF flag.
            im = ImageOps.exif_transpose(im)
            return _to_rgb(im)

    def size(self, image: Image.Image) -> tuple[int, int]:
        return image.size

    def render(
        self,
        image: Image.Image,
        *,
        width: int,
        height: int,
        rotate: bool,
        resampling: Resampling,
    ) -> Image.Image:
        resample = _RESAMPLE[resampling]

        if not rotate:
            return image.resize((width, height), resample)

        src_w, src_h = image.size
        scale = min(width / src_h, height / src_w)
        # ROTATE_270 is counter-clockwise 270, i.e. clockwise 90.
        turned = image.transpose(Image.Transpose.ROTATE_270)
        scaled_w = max(1, round_half_up(src_h * scale))
        scaled_h = max(1, round_half_up(src_w * scale))
        turned = turned.resize((scaled_w, scaled_h), resample)

        canvas = Image.new("RGB", (width, height), _BACKGROUND)
        canvas.paste(turned, ((width - scaled_w) // 2, (height - scaled_h) // 2))
        return canvas

    def encode_jpeg(
        self,
        canvas: Image.Image,
        *,
        quality: float,
        progressive: bool = False,
        optimize: bool = False,
    ) -> bytes:
        buffer = io.BytesIO()
        canvas.save(
            buffer,
            format="JPEG",
            quality=max(1, min(95, round(quality * 100))),
            progressive=progressive,
            optimize=optimize,
        )
        return buffer.getvalue()


def _to_rgb(im: Image.Image) -> Image.Image:
    if im.mode == "RGB":
        return im
    if im.mode in ("RGBA", "LA") or (im.mode == "P" and "transparency" in im.info):
        rgba = im.convert("RGBA")
        bg = Image.new("RGBA", rgba.size, _BACKGROUND + (255,))
        return Image.alpha_composite(bg, rgba).convert("RGB")
    return im.convert("RGB")
