"""Tests for the chunked batch orchestrator."""

from __future__ import annotations

import asyncio
import random
import time

import pytest

from templog.models import (
    ImageErrorKind,
    ImageFailure,
    ImageProcessingOptions,
    ProcessedImage,
    ProcessingProfile,
)
from templog.services.batch import (
    BatchMode,
    plan_for,
    process_batch,
    process_batch_outcomes,
    run_batch,
)

BOX = ImageProcessingOptions(max_width=200, max_height=100)


class FakeProcessor:
    """Stands in for ImageProcessor and records timing of every call."""

    def __init__(self, *, delays: dict[str, float] | None = None, failing: set[str] | None = None,
                 exploding: set[str] | None = None) -> None:
        self.delays = delays or {}
        self.failing = failing or set()
        self.exploding = exploding or set()
        self.in_flight = 0
        self.max_in_flight = 0
        self.spans: list[tuple[str, float, float]] = []
        self.options: list[ImageProcessingOptions] = []

    async def process(self, url: str, options: ImageProcessingOptions):
        self.options.append(options)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        start = time.monotonic()
        try:
            await asyncio.sleep(self.delays.get(url, 0.01))
            if url in self.exploding:
                raise RuntimeError("bug inside the unit")
            if url in self.failing:
                return ImageFailure(url=url, kind=ImageErrorKind.DOWNLOAD_FAILED, message="HTTP 500")
            return ProcessedImage(data=url.encode(), width=200, height=100)
        finally:
            self.in_flight -= 1
            self.spans.append((url, start, time.monotonic()))


def _urls(n: int) -> list[str]:
    return [f"https://bucket.example.com/{i}.jpg" for i in range(n)]


async def test_order_preserved_despite_shuffled_completion() -> None:
    urls = _urls(9)
    rng = random.Random(7)
    processor = FakeProcessor(delays={u: rng.uniform(0.0, 0.03) for u in urls})

    results = await process_batch(urls, BOX, concurrency=4, processor=processor)

    assert len(results) == len(urls)
    assert [r.data.decode() for r in results] == urls


async def test_failures_keep_their_slot() -> None:
    urls = _urls(5)
    processor = FakeProcessor(failing={urls[1]}, exploding={urls[3]})

    outcomes = await process_batch_outcomes(urls, BOX, concurrency=2, processor=processor)
    plain = await process_batch(urls, BOX, concurrency=2, processor=processor)

    assert isinstance(outcomes[1], ImageFailure)
    assert isinstance(outcomes[3], ImageFailure)
    assert [r is None for r in plain] == [False, True, False, True, False]
    assert plain[4].data.decode() == urls[4]


async def test_concurrency_one_never_overlaps() -> None:
    urls = _urls(4)
    processor = FakeProcessor()

    await process_batch(urls, BOX, concurrency=1, processor=processor)

    assert processor.max_in_flight == 1
    spans = sorted(processor.spans, key=lambda s: s[1])
    for (_, _, prev_end), (_, next_start, _) in zip(spans, spans[1:]):
        assert next_start >= prev_end


async def test_concurrency_four_caps_in_flight() -> None:
    urls = _urls(10)
    processor = FakeProcessor(delays={u: 0.02 for u in urls})

    await process_batch(urls, BOX, concurrency=4, processor=processor)

    assert processor.max_in_flight == 4


async def test_next_chunk_waits_for_previous_chunk() -> None:
    urls = _urls(4)
    processor = FakeProcessor(delays={urls[0]: 0.05, urls[1]: 0.0, urls[2]: 0.0, urls[3]: 0.0})

    await process_batch(urls, BOX, concurrency=2, processor=processor)

    spans = {url: (start, end) for url, start, end in processor.spans}
    first_chunk_end = max(spans[urls[0]][1], spans[urls[1]][1])
    assert spans[urls[2]][0] >= first_chunk_end
    assert spans[urls[3]][0] >= first_chunk_end


async def test_inter_chunk_delay() -> None:
    urls = _urls(3)
    processor = FakeProcessor(delays={u: 0.0 for u in urls})

    started = time.monotonic()
    await process_batch(urls, BOX, concurrency=1, delay=0.05, processor=processor)
    elapsed = time.monotonic() - started

    # two gaps between three chunks, none after the last one
    assert elapsed >= 0.1
    assert elapsed < 0.5


async def test_empty_input() -> None:
    assert await process_batch([], BOX, concurrency=3, processor=FakeProcessor()) == []


async def test_invalid_concurrency() -> None:
    with pytest.raises(ValueError):
        await process_batch(_urls(1), BOX, concurrency=0, processor=FakeProcessor())


async def test_progress_callback_reports_each_chunk() -> None:
    progress: list[tuple[int, int]] = []

    await process_batch_outcomes(
        _urls(5), BOX, concurrency=2, processor=FakeProcessor(), progress_callback=lambda d, t: progress.append((d, t))
    )

    assert progress == [(2, 5), (4, 5), (5, 5)]


def test_plans_for_modes() -> None:
    reliability = plan_for(BatchMode.RELIABILITY)
    speed = plan_for(BatchMode.SPEED)

    assert reliability.concurrency == 1
    assert reliability.delay > 0
    assert reliability.profile is ProcessingProfile.HIGH_FIDELITY
    assert speed.concurrency == 4
    assert speed.delay == 0
    assert speed.profile is ProcessingProfile.FAST


async def test_run_batch_speed_mode_uses_fast_profile() -> None:
    urls = _urls(6)
    processor = FakeProcessor(delays={u: 0.01 for u in urls})

    outcomes = await run_batch(urls, BatchMode.SPEED, max_width=200, max_height=100, processor=processor)

    assert len(outcomes) == 6
    assert processor.max_in_flight == 4
    assert {o.profile for o in processor.options} == {ProcessingProfile.FAST}
    assert {(o.max_width, o.max_height) for o in processor.options} == {(200, 100)}
