"""
Admin model for back-office operators.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel

if TYPE_CHECKING:
    from src.models.audit import AuditLog


class Admin(BaseModel):
    """
    Administrator account.

    Admins process withdrawal requests and manage ranking tiers and
    commission configs. Credentials live with the identity provider;
    only the identity and display data are stored here.
    """

    __tablename__ = "admins"

    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
    )
    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Relationships
    audit_logs: Mapped[List["AuditLog"]] = relationship(
        "AuditLog",
        back_populates="admin",
    )

    def __repr__(self) -> str:
        return f"<Admin(id={self.id}, username='{self.username}')>"
