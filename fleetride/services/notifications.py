"""
Notification emitter (outbox writer).

Notifications are inserted in the same transaction as the ride change that
triggers them, so a crash between "state committed" and "notification
sent" cannot lose one.  Delivery happens later in
``fleetride.workers.outbox``.  Nothing here reads or writes ride, driver or
vehicle state.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fleetride.domain.enums import NotificationType, RecipientType
from fleetride.infrastructure.models import NotificationModel
from fleetride.infrastructure.repositories import NotificationRepository


class NotificationEmitter:
    def __init__(self, session: AsyncSession):
        self.repo = NotificationRepository(session)

    def notify(
        self,
        recipient_id: Optional[int],
        type: NotificationType,
        title: str,
        message: str,
        ride_id: int,
        recipient_type: RecipientType = RecipientType.USER,
        **extra: Any,
    ) -> None:
        if recipient_id is None:
            return
        self.repo.add(
            NotificationModel(
                recipient_id=recipient_id,
                recipient_type=recipient_type,
                title=title,
                message=message,
                type=type,
                data={"ride_id": ride_id, **extra},
                is_read=False,
                attempts=0,
            )
        )
