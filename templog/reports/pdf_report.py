"""Printable temperature log rendered with reportlab.

Screenshots are fetched through the batch orchestrator once per report and
embedded as small landscape thumbnails. A row without a screenshot shows a
dash; a row whose screenshot could not be fetched or processed shows an error
placeholder, so the two cases stay distinguishable on paper.
"""
from __future__ import annotations

import asyncio
import html
import io
import logging
from datetime import date
from typing import Iterable, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, StyleSheet1, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from templog.config import get_settings
from templog.models import ImageFailure, ProcessedImage, TemperatureRecord
from templog.services.batch import BatchMode, Outcome, run_batch
from templog.services.image_processor import ImageProcessor

logger = logging.getLogger(__name__)

NO_SCREENSHOT = "—"
HAS_SCREENSHOT = "yes"
DOWNLOAD_ERROR = "download error"
PROCESSING_ERROR = "processing error"

_COL_WIDTHS = [28 * mm, 20 * mm, 38 * mm, 30 * mm, 54 * mm]
_THUMB_MAX_W = 48 * mm
_THUMB_MAX_H = 24 * mm


def build_image_lookup(
    urls: Sequence[str], outcomes: Sequence[Outcome]
) -> tuple[dict[str, ProcessedImage], dict[str, ImageFailure]]:
    """Split positional batch outcomes into success and failure maps by URL."""

    images: dict[str, ProcessedImage] = {}
    failures: dict[str, ImageFailure] = {}
    for url, outcome in zip(urls, outcomes):
        if isinstance(outcome, ProcessedImage):
            images[url] = outcome
        elif outcome is not None:
            failures[url] = outcome
    return images, failures


def screenshot_urls(records: Iterable[TemperatureRecord]) -> list[str]:
    """Screenshot URLs present on *records*, first occurrence order, no repeats."""

    return list(dict.fromkeys(r.screenshot_url for r in records if r.screenshot_url))


def placeholder_for(failure: ImageFailure | None) -> str:
    if failure is not None and not failure.kind.is_download_error:
        return PROCESSING_ERROR
    return DOWNLOAD_ERROR


async def generate_temperature_pdf(
    records: Sequence[TemperatureRecord],
    *,
    mode: BatchMode | None = None,
    include_images: bool = True,
    processor: ImageProcessor | None = None,
    generated_on: date | None = None,
) -> bytes:
    settings = get_settings()
    images: dict[str, ProcessedImage] = {}
    failures: dict[str, ImageFailure] = {}

    if include_images:
        urls = screenshot_urls(records)
        if urls:
            mode = mode or BatchMode(settings.pdf_default_mode)
            outcomes = await run_batch(
                urls,
                mode,
                max_width=settings.pdf_image_max_width,
                max_height=settings.pdf_image_max_height,
                processor=processor,
            )
            images, failures = build_image_lookup(urls, outcomes)
            logger.info(
                "PDF screenshots: %d embedded, %d failed", len(images), len(failures)
            )

    # reportlab layout is synchronous and slow for long logs
    return await asyncio.to_thread(
        render_pdf,
        records,
        images=images,
        failures=failures,
        include_images=include_images,
        generated_on=generated_on,
    )


def render_pdf(
    records: Sequence[TemperatureRecord],
    *,
    images: dict[str, ProcessedImage] | None = None,
    failures: dict[str, ImageFailure] | None = None,
    include_images: bool = True,
    generated_on: date | None = None,
) -> bytes:
    """Lay out the report. Pure rendering; no network access."""

    images = images or {}
    failures = failures or {}
    styles = _build_styles()
    generated_on = generated_on or date.today()

    buffer = io.BytesIO()
    document = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title="Temperature Log",
        author="templog",
    )

    story: list = [
        Paragraph("Temperature Log", styles["LogTitle"]),
        Paragraph(f"Created on: {generated_on.strftime('%d.%m.%Y')}", styles["LogMeta"]),
        Spacer(1, 6 * mm),
    ]

    header = ["Date", "Time", "Location", "Temperature (°C)", "Screenshot"]
    rows: list[list] = [[Paragraph(f"<b>{h}</b>", styles["LogCell"]) for h in header]]
    for record in records:
        rows.append(
            [
                Paragraph(_escape(record.date), styles["LogCell"]),
                Paragraph(_escape(record.time), styles["LogCell"]),
                Paragraph(_escape(record.location), styles["LogCell"]),
                Paragraph(f"{record.temperature:.1f}", styles["LogCell"]),
                screenshot_cell(record, images, failures, include_images, styles),
            ]
        )

    table = Table(rows, colWidths=_COL_WIDTHS, hAlign="LEFT", repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BOX", (0, 0), (-1, -1), 0.6, colors.HexColor("#CBD5E1")),
                ("INNERGRID", (0, 0), (-1, -1), 0.45, colors.HexColor("#E5E7EB")),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F8FAFC")),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("LEFTPADDING", (0, 0), (-1, -1), 4),
                ("RIGHTPADDING", (0, 0), (-1, -1), 4),
                ("TOPPADDING", (0, 0), (-1, -1), 3),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ]
        )
    )
    story.append(table)
    story.append(Spacer(1, 8 * mm))
    story.extend(_summary(records, styles))

    document.build(story)
    return buffer.getvalue()


def screenshot_cell(
    record: TemperatureRecord,
    images: dict[str, ProcessedImage],
    failures: dict[str, ImageFailure],
    include_images: bool,
    styles: StyleSheet1,
):
    url = record.screenshot_url
    if not url:
        return Paragraph(NO_SCREENSHOT, styles["LogCell"])
    if not include_images:
        return Paragraph(HAS_SCREENSHOT, styles["LogCell"])

    image = images.get(url)
    if image is None:
        return Paragraph(placeholder_for(failures.get(url)), styles["LogError"])

    scale = min(_THUMB_MAX_W / image.width, _THUMB_MAX_H / image.height)
    return Image(io.BytesIO(image.data), width=image.width * scale, height=image.height * scale)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _summary(records: Sequence[TemperatureRecord], styles: StyleSheet1) -> list:
    flowables: list = [
        Paragraph("Summary", styles["LogHeading"]),
        Paragraph(f"Total records: {len(records)}", styles["LogBody"]),
    ]
    if not records:
        return flowables

    temps = [r.temperature for r in records]
    avg = sum(temps) / len(temps)
    flowables.extend(
        [
            Paragraph(f"Average temperature: {avg:.1f}°C", styles["LogBody"]),
            Paragraph(f"Minimum temperature: {min(temps):.1f}°C", styles["LogBody"]),
            Paragraph(f"Maximum temperature: {max(temps):.1f}°C", styles["LogBody"]),
        ]
    )
    return flowables


def _build_styles() -> StyleSheet1:
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="LogTitle", parent=styles["Title"], fontName="Helvetica-Bold", fontSize=20, alignment=0))
    styles.add(ParagraphStyle(name="LogMeta", parent=styles["Normal"], fontSize=11, textColor=colors.HexColor("#475569")))
    styles.add(ParagraphStyle(name="LogHeading", parent=styles["Heading2"], fontName="Helvetica-Bold", fontSize=13))
    styles.add(ParagraphStyle(name="LogBody", parent=styles["Normal"], fontSize=10, leading=14))
    styles.add(ParagraphStyle(name="LogCell", parent=styles["Normal"], fontSize=9, leading=11))
    styles.add(
        ParagraphStyle(name="LogError", parent=styles["Normal"], fontSize=9, leading=11, textColor=colors.HexColor("#B91C1C"))
    )
    return styles


def _escape(text: str) -> str:
    return html.escape(text, quote=False)
