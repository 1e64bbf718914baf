"""PDF export endpoint."""
from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Response

from templog.handlers.auth import current_user_id
from templog.reports.pdf_report import generate_temperature_pdf
from templog.services.batch import BatchMode
from templog.services.record_store import record_store

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/pdf")
async def export_pdf(
    start_date: date | None = None,
    end_date: date | None = None,
    mode: BatchMode | None = None,
    images: bool = True,
    user_id: str = Depends(current_user_id),
):
    records, _ = record_store.query_records(
        user_id, start_date=start_date, end_date=end_date, sort="date", direction="desc"
    )
    if not records:
        raise HTTPException(status_code=404, detail="No temperature records found for the given period")

    try:
        pdf_bytes = await generate_temperature_pdf(records, mode=mode, include_images=images)
    except Exception as exc:
        logger.exception("PDF generation failed for user_id=%s", user_id)
        raise HTTPException(status_code=500, detail="Failed to create PDF") from exc

    filename = f"temperature-log-{date.today().isoformat()}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
