"""
Notification delivery for ledger events.

Senders are best effort: a failed notification is logged and never
undoes or fails the ledger operation that triggered it.
"""

import logging
from typing import Any, Optional, Protocol

from src.db import get_db_context
from src.models import Notification

logger = logging.getLogger(__name__)

# Template ids
WITHDRAWAL_APPROVED = "withdrawal_approved"
WITHDRAWAL_REJECTED = "withdrawal_rejected"


class NotificationSender(Protocol):
    async def send(
        self,
        recipient_id: int,
        kind: str,
        template_id: str,
        data: dict[str, Any],
    ) -> None:
        ...


class DatabaseNotificationSender:
    """
    Persists notifications as rows.

    Uses its own session so a failure here cannot touch the caller's
    transaction.
    """

    async def send(
        self,
        recipient_id: int,
        kind: str,
        template_id: str,
        data: dict[str, Any],
    ) -> None:
        async with get_db_context() as db:
            db.add(
                Notification(
                    recipient_kind=kind,
                    recipient_id=recipient_id,
                    template_id=template_id,
                    data=data,
                )
            )


default_sender = DatabaseNotificationSender()


async def notify(
    sender: Optional[NotificationSender],
    recipient_id: int,
    kind: str,
    template_id: str,
    data: dict[str, Any],
) -> bool:
    """
    Send one notification, swallowing and logging failures.

    Returns:
        True if the sender accepted the notification
    """
    sender = sender or default_sender
    try:
        await sender.send(recipient_id, kind, template_id, data)
        return True
    except Exception as e:
        logger.error(
            f"Failed to send '{template_id}' notification to {kind}:{recipient_id}: {e}"
        )
        return False
