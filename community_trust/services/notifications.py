"""Notification inbox: reading and marking a recipient's notifications."""

from dataclasses import dataclass

from ..models import Actor, Notification
from ..schemas import GetNotificationsInput, MarkNotificationReadInput
from ..stores.base import PolicyStore
from .errors import NotFound, ValidationError
from .permissions import PermissionEvaluator


@dataclass
class NotificationPage:
    notifications: list[Notification]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit


class NotificationInbox:
    """Recipient-scoped reads and read-marking."""

    def __init__(self, store: PolicyStore, permissions: PermissionEvaluator):
        self._store = store
        self._permissions = permissions

    def _recipient(self, actor: Actor) -> str:
        if not actor.user_id:
            raise ValidationError("An authenticated user is required")
        return actor.user_id

    async def list(self, data: GetNotificationsInput, actor: Actor) -> NotificationPage:
        recipient_id = self._recipient(actor)
        notifications, total = await self._store.list_notifications(
            recipient_id,
            unread_only=data.unread_only,
            offset=(data.page - 1) * data.limit,
            limit=data.limit,
        )
        return NotificationPage(notifications, total, data.page, data.limit)

    async def unread_count(self, actor: Actor) -> int:
        return await self._store.count_unread(self._recipient(actor))

    async def mark_read(self, data: MarkNotificationReadInput, actor: Actor) -> Notification:
        recipient_id = self._recipient(actor)
        async with self._store.transaction():
            notification = await self._store.load_notification(data.notification_id)
            if notification is None:
                raise NotFound(f"Notification {data.notification_id} not found")
            self._permissions.require(
                self._permissions.owns(recipient_id, notification.recipient_id),
                "mark this notification",
            )
            # Read state only; delivery fields belong to the router
            await self._store.mark_notification_read(notification.id)
            notification.is_read = True
            return notification

    async def mark_all_read(self, actor: Actor) -> int:
        return await self._store.mark_all_read(self._recipient(actor))
