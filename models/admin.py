"""AdminFlag model: a row per privileged user."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, BigIntId


class Admin(Base):
    """Existence of a row marks the user as an admin."""

    __tablename__ = "admins"

    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    is_first_user: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # Only one account can ever win the first-user bootstrap
        Index(
            "uq_admins_first_user",
            "is_first_user",
            unique=True,
            postgresql_where=text("is_first_user"),
            sqlite_where=text("is_first_user = 1"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Admin(user_id={self.user_id}, is_first_user={self.is_first_user})>"
