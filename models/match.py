from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, BigIntId


class Match(Base):
    """Durable record linking one user to one pair."""

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    # One match per user and one match per pair; the constraints settle concurrent reveals
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    pair_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("pairs.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    user_name: Mapped[str] = mapped_column(String(128), nullable=False)
    user_email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    # Copy of the pair at assignment time
    number: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)  # NULL until the user sends one
    message_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Match(id={self.id}, user_id={self.user_id}, pair_id={self.pair_id})>"
