"""In-process repository for temperature readings.

Records are kept per user:

    {user_id: {record_id: TemperatureRecord}}

Input is validated with ``TemperatureCreate`` before a record is stored;
ids are assigned by the store and deletes check ownership.
"""
from __future__ import annotations

import itertools
import logging
import threading
from datetime import date
from typing import Any, List, Literal

from templog.models import TemperatureCreate, TemperatureRecord, TemperatureStats

logger = logging.getLogger(__name__)

SortField = Literal["temperature", "date", "time"]
SortDirection = Literal["asc", "desc"]


class RecordNotFoundError(LookupError):
    pass


class RecordOwnershipError(PermissionError):
    pass


class RecordStore:
    """Thread-safe store of temperature records keyed by user id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, dict[str, TemperatureRecord]] = {}
        self._owners: dict[str, str] = {}
        self._ids = itertools.count(1)

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------

    def add_record(self, user_id: str, reading: TemperatureCreate | dict[str, Any]) -> TemperatureRecord:
        if not isinstance(reading, TemperatureCreate):
            reading = TemperatureCreate.model_validate(reading)

        with self._lock:
            record_id = str(next(self._ids))
            record = TemperatureRecord(id=record_id, user_id=user_id, **reading.model_dump())
            self._records.setdefault(user_id, {})[record_id] = record
            self._owners[record_id] = user_id

        logger.debug("Added record id=%s for user_id=%s", record_id, user_id)
        return record

    def delete_record(self, user_id: str, record_id: str) -> TemperatureRecord:
        """Remove a record owned by *user_id* and return it."""

        with self._lock:
            owner = self._owners.get(record_id)
            if owner is None:
                raise RecordNotFoundError(record_id)
            if owner != user_id:
                raise RecordOwnershipError(record_id)
            del self._owners[record_id]
            record = self._records[owner].pop(record_id)

        logger.debug("Deleted record id=%s for user_id=%s", record_id, user_id)
        return record

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    def get_record(self, user_id: str, record_id: str) -> TemperatureRecord | None:
        with self._lock:
            return self._records.get(user_id, {}).get(record_id)

    def list_records(self, user_id: str) -> List[TemperatureRecord]:
        """All records of a user, newest first."""

        with self._lock:
            items = list(self._records.get(user_id, {}).values())
        items.sort(key=lambda r: (r.created_at, int(r.id)), reverse=True)
        return items

    def query_records(
        self,
        user_id: str,
        *,
        search: str | None = None,
        sort: SortField = "date",
        direction: SortDirection = "desc",
        start_date: date | None = None,
        end_date: date | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> tuple[List[TemperatureRecord], int]:
        """Filter, sort and paginate a user's records.

        Returns ``(page_items, total_matching)``.
        """

        items = self.list_records(user_id)

        if start_date is not None:
            items = [r for r in items if r.measured_on >= start_date]
        if end_date is not None:
            items = [r for r in items if r.measured_on <= end_date]

        if search:
            needle = search.strip().lower()
            items = [
                r
                for r in items
                if needle in r.date.lower()
                or needle in r.time.lower()
                or needle in r.location.lower()
                or needle in f"{r.temperature}"
            ]

        items.sort(key=_sort_key(sort), reverse=direction == "desc")

        total = len(items)
        if page_size is not None:
            offset = (max(page, 1) - 1) * page_size
            items = items[offset:offset + page_size]
        return items, total

    def get_stats(self, user_id: str) -> TemperatureStats:
        items = self.list_records(user_id)
        if not items:
            return TemperatureStats()
        temps = [r.temperature for r in items]
        return TemperatureStats(
            total_records=len(items),
            avg_temperature=sum(temps) / len(temps),
            min_temperature=min(temps),
            max_temperature=max(temps),
            records_with_screenshots=sum(1 for r in items if r.screenshot_url),
        )

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._owners.clear()


def _sort_key(field: SortField):
    if field == "temperature":
        return lambda r: r.temperature
    if field == "time":
        return lambda r: r.time
    return lambda r: r.measured_at


# Instantiate a singleton for app-wide reuse
record_store = RecordStore()
