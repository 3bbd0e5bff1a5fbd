from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.app.users.constants import USER_PK_ABBREV
from src.app.users.domains import UserCreate, UserRead
from src.common.model import BaseModel


class User(BaseModel[UserRead, UserCreate]):
    """A user tracked for token usage. Owned by the external registry."""

    team_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    external_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    has_report: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __pk_abbrev__ = USER_PK_ABBREV
    __read_domain__ = UserRead
    __create_domain__ = UserCreate

    __table_args__ = (Index('idx_user_team', 'team_id'),)
