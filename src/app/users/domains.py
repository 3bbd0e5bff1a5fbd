from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.app.users.constants import USER_PK_ABBREV
from src.common.model import generate_id


class UserCreate(BaseModel):
    id: Optional[str] = Field(default_factory=lambda: generate_id(USER_PK_ABBREV))
    team_id: str | None = None
    external_id: str | None = None  # e.g. Slack or GitHub handle
    display_name: str | None = None
    has_report: bool = False  # an insights report exists for this user


class UserRead(BaseModel):
    id: str
    team_id: str | None = None
    external_id: str | None = None
    display_name: str | None = None
    has_report: bool = False
    created_at: datetime | None = None

    model_config = {'from_attributes': True}

    @property
    def label(self) -> str:
        """Name shown on leaderboards, the user id when nothing better is known."""
        return self.display_name or self.external_id or self.id
