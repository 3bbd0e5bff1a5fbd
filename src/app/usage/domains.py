from datetime import datetime, timezone
from typing import List, Optional

from pydantic import Field, field_validator

from src.common.domain import BaseDomain
from src.common.utils import parse_date_string


class UsageRecord(BaseDomain):
    """
    One user's usage for one client reported local date. `date` is what the
    client sent, `utc_date` is the same day normalised to UTC when known.
    Window filtering always goes through `effective_date`.
    """

    user_id: str
    date: str
    utc_date: Optional[str] = None
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    cache_creation_tokens: int = Field(default=0, ge=0)
    cache_read_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    total_cost: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    models_used: List[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator('date', 'utc_date')
    @classmethod
    def validate_date_string(cls, value: str | None) -> str | None:
        if value is not None:
            parse_date_string(value)
        return value

    @field_validator('updated_at')
    @classmethod
    def validate_updated_at(cls, value: datetime) -> datetime:
        # sqlite hands back naive datetimes, everything we write is UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def effective_date(self) -> str:
        return self.utc_date or self.date


class UsageRecordCreate(UsageRecord):
    """Row shape for the `usagedaily` table."""

    pass
