from __future__ import annotations

from datetime import date as date_type, datetime, timezone

from pydantic import BaseModel, Field, field_validator

_DATE_FORMAT = "%d.%m.%Y"
_TIME_FORMAT = "%H:%M"


class TemperatureCreate(BaseModel):
    """A reading as posted by the logging form."""

    temperature: float = Field(..., ge=-50, le=100)
    date: str = Field(..., description="Measurement day, DD.MM.YYYY")
    time: str = Field(..., description="Measurement time, HH:MM")
    location: str = Field(..., min_length=1, max_length=50)
    screenshot_url: str | None = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        datetime.strptime(value, _DATE_FORMAT)
        return value

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        datetime.strptime(value, _TIME_FORMAT)
        return value

    @field_validator("location")
    @classmethod
    def _strip_location(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("location must not be blank")
        return value

    @field_validator("screenshot_url")
    @classmethod
    def _empty_url_is_none(cls, value: str | None) -> str | None:
        return value or None


class TemperatureRecord(TemperatureCreate):
    id: str
    user_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def measured_on(self) -> date_type:
        return datetime.strptime(self.date, _DATE_FORMAT).date()

    @property
    def measured_at(self) -> datetime:
        return datetime.strptime(f"{self.date} {self.time}", f"{_DATE_FORMAT} {_TIME_FORMAT}")


class TemperatureStats(BaseModel):
    total_records: int = 0
    avg_temperature: float = 0.0
    min_temperature: float = 0.0
    max_temperature: float = 0.0
    records_with_screenshots: int = 0
