from datetime import datetime

from sqlalchemy import JSON, BigInteger, DateTime, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.app.usage.constants import USAGE_DAILY_PK_ABBREV
from src.app.usage.domains import UsageRecord, UsageRecordCreate
from src.common.model import BaseModel


class UsageDaily(BaseModel[UsageRecord, UsageRecordCreate]):
    """One row per user per client local date."""

    user_id: Mapped[str] = mapped_column(String(50), nullable=False)
    # Zero padded YYYY-MM-DD strings so range filters compare lexicographically
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    utc_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    input_tokens: Mapped[int] = mapped_column(BigInteger, default=0)
    output_tokens: Mapped[int] = mapped_column(BigInteger, default=0)
    cache_creation_tokens: Mapped[int] = mapped_column(BigInteger, default=0)
    cache_read_tokens: Mapped[int] = mapped_column(BigInteger, default=0)
    total_tokens: Mapped[int] = mapped_column(BigInteger, default=0)
    total_cost: Mapped[float] = mapped_column(Float, default=0.0)
    models_used: Mapped[list] = mapped_column(JSON, default=list)  # type: ignore[type-arg]
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __pk_abbrev__ = USAGE_DAILY_PK_ABBREV
    __read_domain__ = UsageRecord
    __create_domain__ = UsageRecordCreate

    __table_args__ = (
        Index('idx_usage_daily_user_date', 'user_id', 'date', unique=True),
        Index('idx_usage_daily_utc_date', 'utc_date'),
    )
