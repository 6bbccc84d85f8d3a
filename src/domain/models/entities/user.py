import datetime
import uuid

from sqlalchemy import JSON, Date, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.base.config.database import Base


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_user_id)
    username: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(100))
    # Google subject id, set only for accounts created or linked via Google login.
    sub: Mapped[str | None] = mapped_column(Text, unique=True, default=None)
    # Bearer tokens of the currently open sessions, oldest first.
    tokens: Mapped[list[str]] = mapped_column(JSON, default=list)

    name: Mapped[str | None] = mapped_column(String(255), default=None)
    birthdate: Mapped[datetime.date | None] = mapped_column(Date, default=None)
    profile_pic: Mapped[str | None] = mapped_column(String(1024), default=None)
    register_date: Mapped[datetime.datetime] = mapped_column(server_default=func.now())

    def has_session(self, token: str) -> bool:
        return token in (self.tokens or [])
