"""Chunked, order-preserving batch processing of screenshot URLs."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from templog.config import get_settings
from templog.models import (
    ImageErrorKind,
    ImageFailure,
    ImageProcessingOptions,
    ProcessedImage,
    ProcessingProfile,
)
from templog.services.image_processor import ImageProcessor

logger = logging.getLogger(__name__)

Outcome = ProcessedImage | ImageFailure


class BatchMode(str, Enum):
    RELIABILITY = "reliability"
    SPEED = "speed"


@dataclass(frozen=True)
class BatchPlan:
    concurrency: int
    delay: float
    profile: ProcessingProfile


def plan_for(mode: BatchMode) -> BatchPlan:
    settings = get_settings()
    if mode is BatchMode.SPEED:
        return BatchPlan(concurrency=settings.speed_concurrency, delay=0.0, profile=ProcessingProfile.FAST)
    return BatchPlan(
        concurrency=1,
        delay=settings.reliability_delay_seconds,
        profile=ProcessingProfile.HIGH_FIDELITY,
    )


async def process_batch_outcomes(
    urls: Sequence[str],
    options: ImageProcessingOptions,
    concurrency: int = 1,
    *,
    delay: float = 0.0,
    processor: Optional[ImageProcessor] = None,
    log: Optional[logging.Logger] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> List[Outcome]:
    """Run every URL through the processor, ``concurrency`` at a time.

    Chunk N+1 starts only once every member of chunk N has settled. Slot ``i``
    of the result always belongs to ``urls[i]``; failures never abort the batch.
    """

    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    log = log or logger
    total = len(urls)
    results: List[Optional[Outcome]] = [None] * total

    if processor is None:
        async with ImageProcessor(logger=log) as own_processor:
            await _run_chunks(urls, options, concurrency, delay, own_processor, log, results, progress_callback)
    else:
        await _run_chunks(urls, options, concurrency, delay, processor, log, results, progress_callback)

    outcomes = [
        r if r is not None else ImageFailure(url=urls[i], kind=ImageErrorKind.DECODE_FAILED, message="not processed")
        for i, r in enumerate(results)
    ]
    succeeded = sum(1 for r in outcomes if isinstance(r, ProcessedImage))
    log.info("Processed %d/%d screenshots (concurrency=%d)", succeeded, total, concurrency)
    return outcomes


async def process_batch(
    urls: Sequence[str],
    options: ImageProcessingOptions,
    concurrency: int = 1,
    *,
    delay: float = 0.0,
    processor: Optional[ImageProcessor] = None,
    log: Optional[logging.Logger] = None,
) -> List[Optional[ProcessedImage]]:
    outcomes = await process_batch_outcomes(
        urls, options, concurrency, delay=delay, processor=processor, log=log
    )
    return [o if isinstance(o, ProcessedImage) else None for o in outcomes]


async def run_batch(
    urls: Sequence[str],
    mode: BatchMode,
    *,
    max_width: int,
    max_height: int,
    quality: float | None = None,
    processor: Optional[ImageProcessor] = None,
) -> List[Outcome]:
    """Process *urls* with the concurrency, delay and profile of *mode*."""

    plan = plan_for(mode)
    options = ImageProcessingOptions(
        max_width=max_width, max_height=max_height, quality=quality, profile=plan.profile
    )
    logger.info("Processing %d screenshots in %s mode", len(urls), mode.value)
    return await process_batch_outcomes(
        urls, options, plan.concurrency, delay=plan.delay, processor=processor
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _run_chunks(
    urls: Sequence[str],
    options: ImageProcessingOptions,
    concurrency: int,
    delay: float,
    processor: ImageProcessor,
    log: logging.Logger,
    results: List[Optional[Outcome]],
    progress_callback: Optional[Callable[[int, int], None]],
) -> None:
    total = len(urls)
    for start in range(0, total, concurrency):
        chunk = urls[start:start + concurrency]
        settled = await asyncio.gather(
            *(_guarded(processor, url, options, start + offset, log) for offset, url in enumerate(chunk))
        )
        for offset, outcome in enumerate(settled):
            results[start + offset] = outcome

        done = start + len(chunk)
        if progress_callback:
            progress_callback(done, total)

        # Give the allocator a moment between chunks; never after the last one.
        if delay > 0 and done < total:
            await asyncio.sleep(delay)


async def _guarded(
    processor: ImageProcessor,
    url: str,
    options: ImageProcessingOptions,
    index: int,
    log: logging.Logger,
) -> Outcome:
    try:
        return await processor.process(url, options)
    except Exception as exc:  # pylint: disable=broad-except
        log.exception("Failed to process screenshot %d (%s)", index, url)
        return ImageFailure(url=url or "", kind=ImageErrorKind.DECODE_FAILED, message=repr(exc))
