from datetime import datetime
from sqlalchemy import Boolean, DateTime, Integer, ForeignKey, String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from urlmonitor.database import Base
from urlmonitor.timeutils import utcnow

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


class Outcome(Base):
    """One immutable probe result. Rows are inserted and deleted, never updated."""

    __tablename__ = "outcomes"
    __table_args__ = (
        Index("ix_outcomes_target_checked", "target_id", "checked_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    target_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("targets.id", ondelete="CASCADE"), nullable=False
    )
    status_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_up: Mapped[bool] = mapped_column(Boolean, nullable=False)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    checked_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    target: Mapped["Target"] = relationship(back_populates="outcomes")  # noqa: F821

    @property
    def is_redirect(self) -> bool:
        return self.status_code in REDIRECT_STATUSES
