from datetime import datetime
from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from urlmonitor.database import Base
from urlmonitor.models.outcome import REDIRECT_STATUSES
from urlmonitor.timeutils import utcnow


class ArchiveEntry(Base):
    """A retired outcome. ``target_id`` has no foreign key so history outlives the target."""

    __tablename__ = "archived_outcomes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    status_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_up: Mapped[bool] = mapped_column(Boolean, nullable=False)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    checked_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    archived_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    @property
    def is_redirect(self) -> bool:
        return self.status_code in REDIRECT_STATUSES
