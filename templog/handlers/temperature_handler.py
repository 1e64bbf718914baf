"""Endpoints for logging and browsing temperature readings."""
from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import ValidationError

from templog.handlers.auth import current_user_id
from templog.models import TemperatureCreate, TemperatureRecord, TemperatureStats
from templog.services.record_store import RecordNotFoundError, RecordOwnershipError, record_store

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/temperature")
async def create_reading(
    payload: dict[str, Any] = Body(...),
    user_id: str = Depends(current_user_id),
):
    try:
        reading = TemperatureCreate.model_validate(payload)
    except ValidationError as exc:
        logger.info("Rejected reading from user_id=%s: %s", user_id, exc.errors())
        raise HTTPException(
            status_code=400,
            detail="temperature (-50..100), date (DD.MM.YYYY), time (HH:MM) and location are required",
        ) from exc

    record = record_store.add_record(user_id, reading)
    logger.info("Stored reading id=%s for user_id=%s", record.id, user_id)
    return {"success": True, "record": record.model_dump(mode="json", exclude={"user_id"})}


@router.get("/temperature")
async def list_readings(
    search: str | None = None,
    sort: Literal["temperature", "date", "time"] = "date",
    direction: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    user_id: str = Depends(current_user_id),
):
    items, total = record_store.query_records(
        user_id, search=search, sort=sort, direction=direction, page=page, page_size=page_size
    )
    return {
        "success": True,
        "records": [_public(r) for r in items],
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.get("/temperature/stats", response_model=TemperatureStats)
async def reading_stats(user_id: str = Depends(current_user_id)):
    return record_store.get_stats(user_id)


@router.delete("/temperature/{record_id}")
async def delete_reading(record_id: str, user_id: str = Depends(current_user_id)):
    try:
        record_store.delete_record(user_id, record_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Record not found") from exc
    except RecordOwnershipError as exc:
        logger.warning("user_id=%s tried to delete foreign record id=%s", user_id, record_id)
        raise HTTPException(status_code=403, detail="Not allowed to delete this record") from exc
    return {"success": True}


def _public(record: TemperatureRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", exclude={"user_id"})
