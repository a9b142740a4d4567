"""
Notification model for messages addressed to actors and admins.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, utc_now


class Notification(Base):
    """
    Persisted notification.

    Rows are written by the notification sender; delivery channels
    (email, push) read from here and are outside this service.
    """

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    recipient_kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="agent, landlord, tenant or admin",
    )
    recipient_id: Mapped[int] = mapped_column(
        index=True,
        nullable=False,
    )
    template_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    data: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
    )
    is_read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, template_id='{self.template_id}', recipient={self.recipient_kind}:{self.recipient_id})>"
