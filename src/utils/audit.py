"""
Audit trail for admin decisions.

Approvals, rejections, tier changes and commission config changes each
leave one AuditLog row. Rows are added to the request's session and
committed with it, after the ledger operation itself has committed.
"""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.models.audit import AuditAction, AuditLog

logger = logging.getLogger(__name__)


async def log_action(
    db: AsyncSession,
    admin_id: int,
    action: AuditAction,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action_metadata: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """
    Record an admin decision.

    Args:
        db: Request session; the caller's dependency commits it
        admin_id: Admin who made the decision
        action: What was decided
        target_type: "withdrawal", "tier" or "commission_config"
        target_id: ID of the affected row, if there is one
        action_metadata: Amounts, reasons, references (JSON-serializable)
        ip_address: Client IP address

    Returns:
        The pending AuditLog row
    """
    entry = AuditLog(
        admin_id=admin_id,
        action=AuditAction(action),
        target_type=target_type,
        target_id=target_id,
        action_metadata=action_metadata,
        ip_address=ip_address,
    )
    db.add(entry)
    logger.info(
        f"Admin {admin_id}: {entry.action.value} on {target_type or '-'} {target_id or ''}".rstrip()
    )
    return entry


def get_client_ip(request) -> Optional[str]:
    """
    Client IP of a request.

    Behind the reverse proxy the first X-Forwarded-For hop is the client.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else None
