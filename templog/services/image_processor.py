"""Screenshot download and normalisation for the PDF export.

A screenshot URL goes through: URL check, bounded download (with retries on
server/transport errors), size and content-type guards, decode, portrait to
landscape rotation, fit-within-box resize and JPEG re-encode.

Nothing in here raises past :meth:`ImageProcessor.process`; every problem is
reported as an :class:`~templog.models.ImageFailure` so a batch never aborts
because of one bad screenshot.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from templog.config import get_settings
from templog.models import (
    ImageErrorKind,
    ImageFailure,
    ImageProcessingOptions,
    ProcessedImage,
    ProcessingProfile,
)
from templog.services.raster import RasterBackend, Resampling, get_backend, round_half_up

_VALID_IMAGE_PREFIX = "image/"


class ImageProcessingError(Exception):
    """Raised inside the pipeline; converted to an ImageFailure at its boundary."""

    def __init__(self, kind: ImageErrorKind, message: str):
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class SourceImage:
    data: bytes
    content_type: str

    @property
    def byte_length(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class EncodePolicy:
    quality: float
    resampling: Resampling
    progressive: bool
    optimize: bool


def policy_for(options: ImageProcessingOptions) -> EncodePolicy:
    """Translate a processing profile into concrete encoder knobs."""

    if options.profile is ProcessingProfile.FAST:
        return EncodePolicy(quality=0.6, resampling=Resampling.NEAREST, progressive=False, optimize=False)
    if options.profile is ProcessingProfile.BALANCED:
        return EncodePolicy(
            quality=min(options.quality or 0.7, 0.8),
            resampling=Resampling.BILINEAR,
            progressive=False,
            optimize=False,
        )
    return EncodePolicy(
        quality=min(options.quality or 0.8, 0.8),
        resampling=Resampling.HIGH_QUALITY,
        progressive=False,
        optimize=True,
    )


def calculate_dimensions(src_width: int, src_height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Largest box with the source aspect ratio that fits inside the bounds.

    Width is the binding constraint first; if that makes the image too tall,
    height becomes the binding constraint instead. No cropping.
    """

    aspect = src_width / src_height
    width = float(max_width)
    height = width / aspect
    if height > max_height:
        height = float(max_height)
        width = height * aspect
    return max(1, round_half_up(width)), max(1, round_half_up(height))


def is_http_url(url: str | None) -> bool:
    if not url:
        return False
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


class ImageProcessor:
    """Downloads screenshots and turns them into small landscape JPEGs.

    One instance may serve a whole batch; it holds no per-image state. The
    HTTP client is created on demand unless one is injected, in which case
    the caller keeps ownership of it.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        backend: RasterBackend | None = None,
        logger: logging.Logger | None = None,
        max_bytes: int | None = None,
        timeout: float | None = None,
        fast_timeout: float | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        settings = get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self._backend = backend or get_backend()
        self._logger = logger or logging.getLogger(__name__)
        self._max_bytes = max_bytes if max_bytes is not None else settings.image_max_bytes
        self._timeout = timeout if timeout is not None else settings.image_timeout_seconds
        self._fast_timeout = fast_timeout if fast_timeout is not None else settings.image_fast_timeout_seconds
        self._max_retries = max_retries if max_retries is not None else settings.image_max_retries
        self._retry_delay = retry_delay if retry_delay is not None else settings.image_retry_delay_seconds
        self._headers = {
            "User-Agent": user_agent or settings.user_agent,
            "Accept": "image/*",
            "Cache-Control": "no-cache",
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process(self, url: str, options: ImageProcessingOptions) -> ProcessedImage | ImageFailure:
        try:
            return await self._process(url, options)
        except ImageProcessingError as exc:
            self._logger.warning("Screenshot %s failed (%s): %s", url, exc.kind.value, exc.message)
            return ImageFailure(url=url or "", kind=exc.kind, message=exc.message)
        except Exception as exc:  # pylint: disable=broad-except
            self._logger.exception("Unexpected error processing screenshot %s", url)
            return ImageFailure(url=url or "", kind=ImageErrorKind.DECODE_FAILED, message=repr(exc))

    async def process_or_none(self, url: str, options: ImageProcessingOptions) -> ProcessedImage | None:
        outcome = await self.process(url, options)
        return outcome if isinstance(outcome, ProcessedImage) else None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ImageProcessor":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    async def _process(self, url: str, options: ImageProcessingOptions) -> ProcessedImage:
        if not is_http_url(url):
            raise ImageProcessingError(ImageErrorKind.INVALID_URL, f"not an http(s) URL: {url!r}")

        timeout = self._fast_timeout if options.profile is ProcessingProfile.FAST else self._timeout
        source = await self._download(url, timeout)
        processed = self._normalize(source, options)

        ratio = (1 - len(processed.data) / source.byte_length) * 100
        self._logger.debug(
            "Screenshot %s -> %dx%d, %.2fKB (%.1f%% reduction, rotated=%s)",
            url,
            processed.width,
            processed.height,
            len(processed.data) / 1024,
            ratio,
            processed.is_rotated,
        )
        return processed

    async def _download(self, url: str, timeout: float) -> SourceImage:
        last_error: ImageProcessingError | None = None

        for attempt in range(self._max_retries + 1):
            if attempt:
                self._logger.info(
                    "Retrying %s in %.1fs (attempt %d/%d)", url, self._retry_delay, attempt, self._max_retries
                )
                await asyncio.sleep(self._retry_delay)

            try:
                async with self._client.stream("GET", url, headers=self._headers, timeout=timeout) as response:
                    if response.status_code >= 500:
                        last_error = ImageProcessingError(
                            ImageErrorKind.DOWNLOAD_FAILED, f"HTTP {response.status_code}"
                        )
                        continue
                    return await self._read_body(url, response)
            except httpx.TimeoutException as exc:
                last_error = ImageProcessingError(ImageErrorKind.DOWNLOAD_TIMEOUT, f"no response within {timeout}s ({exc!r})")
            except httpx.TransportError as exc:
                last_error = ImageProcessingError(ImageErrorKind.DOWNLOAD_FAILED, f"transport error: {exc!r}")
            except httpx.RequestError as exc:
                # redirect loops, broken content-encoding: retrying won't help
                raise ImageProcessingError(ImageErrorKind.DOWNLOAD_FAILED, f"request error: {exc!r}") from exc

        assert last_error is not None
        raise last_error

    async def _read_body(self, url: str, response: httpx.Response) -> SourceImage:
        if not response.is_success:
            raise ImageProcessingError(ImageErrorKind.DOWNLOAD_FAILED, f"HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "")
        if not content_type.lower().startswith(_VALID_IMAGE_PREFIX):
            raise ImageProcessingError(ImageErrorKind.INVALID_CONTENT_TYPE, f"content-type {content_type!r}")

        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self._max_bytes:
            raise ImageProcessingError(
                ImageErrorKind.PAYLOAD_TOO_LARGE, f"declared {int(declared) / (1024 * 1024):.2f}MB"
            )

        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) > self._max_bytes:
                raise ImageProcessingError(
                    ImageErrorKind.PAYLOAD_TOO_LARGE, f"body exceeds {self._max_bytes} bytes"
                )

        if not body:
            raise ImageProcessingError(ImageErrorKind.DECODE_FAILED, "empty body")

        self._logger.debug("Downloaded %s (%d bytes, %s)", url, len(body), content_type)
        return SourceImage(data=bytes(body), content_type=content_type)

    def _normalize(self, source: SourceImage, options: ImageProcessingOptions) -> ProcessedImage:
        try:
            image = self._backend.decode(source.data)
            src_width, src_height = self._backend.size(image)
        except Exception as exc:  # pylint: disable=broad-except
            raise ImageProcessingError(ImageErrorKind.DECODE_FAILED, repr(exc)) from exc

        if src_width <= 0 or src_height <= 0:
            raise ImageProcessingError(ImageErrorKind.DECODE_FAILED, f"invalid dimensions {src_width}x{src_height}")

        needs_rotation = src_height > src_width
        eff_width, eff_height = (src_height, src_width) if needs_rotation else (src_width, src_height)
        width, height = calculate_dimensions(eff_width, eff_height, options.max_width, options.max_height)
        policy = policy_for(options)

        try:
            canvas = self._backend.render(
                image, width=width, height=height, rotate=needs_rotation, resampling=policy.resampling
            )
            data = self._backend.encode_jpeg(
                canvas, quality=policy.quality, progressive=policy.progressive, optimize=policy.optimize
            )
        except Exception as exc:  # pylint: disable=broad-except
            raise ImageProcessingError(ImageErrorKind.ENCODE_FAILED, repr(exc)) from exc

        return ProcessedImage(data=data, width=width, height=height, format="jpeg", is_rotated=needs_rotation)
