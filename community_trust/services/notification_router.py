"""
Notification Router: classification, channel resolution and idempotent
creation of notifications.

This module is responsible for:
1. Mapping a NotificationType to its fixed NotificationCategory
2. Resolving the delivery channel from the recipient's preference
3. Creating at most one Notification per (recipient, type, reference)
4. Recording the delivery status reported back by the delivery collaborator

It never delivers anything itself; see ``services.delivery``.
"""

import logging
from dataclasses import dataclass

from ..core.locks import KeyedLocks
from ..models import (
    NOTIFICATION_CATEGORIES,
    DeliveryChannel,
    Notification,
    NotificationCategory,
    NotificationDeliveryStatus,
    NotificationType,
    utcnow,
)
from ..stores.base import PolicyStore
from .errors import ConflictError, NotFound, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    """A domain event that should reach one recipient."""
    recipient_id: str
    type: NotificationType
    reference_id: str
    title: str
    message: str
    action_url: str | None = None


def category_for(notification_type: NotificationType) -> NotificationCategory:
    return NOTIFICATION_CATEGORIES[NotificationType(notification_type)]


class NotificationRouter:
    """Sole creator of notifications and recorder of their delivery status."""

    def __init__(
        self,
        store: PolicyStore,
        default_channel: DeliveryChannel = DeliveryChannel.IN_APP,
        locks: KeyedLocks | None = None,
    ):
        self._store = store
        self._default_channel = default_channel
        self._locks = locks or KeyedLocks()

    async def resolve_channel(
        self,
        user_id: str,
        category: NotificationCategory,
    ) -> DeliveryChannel:
        preference = await self._store.load_channel_preference(user_id, category)
        return preference or self._default_channel

    async def set_channel_preference(
        self,
        user_id: str,
        category: NotificationCategory,
        channel: DeliveryChannel,
    ) -> None:
        if not user_id:
            raise ValidationError("user_id is required")
        await self._store.save_channel_preference(
            user_id, NotificationCategory(category), DeliveryChannel(channel)
        )

    # =========================================================================
    # CREATION
    # =========================================================================

    async def notify(self, event: NotificationEvent) -> Notification:
        """
        Route an event to a PENDING notification.

        Idempotent: a second event with the same (recipient, type, reference)
        returns the notification created by the first.
        """
        if not event.recipient_id:
            raise ValidationError("recipient_id is required")
        if not event.reference_id:
            raise ValidationError("reference_id is required")

        notification_type = NotificationType(event.type)
        key = f"notify:{event.recipient_id}:{notification_type.value}:{event.reference_id}"

        async with self._locks.hold(key):
            async with self._store.transaction():
                existing = await self._store.find_notification(
                    event.recipient_id, notification_type, event.reference_id
                )
                if existing is not None:
                    logger.debug(f"Duplicate notification suppressed: {key}")
                    return existing

                category = category_for(notification_type)
                channel = await self.resolve_channel(event.recipient_id, category)
                notification = await self._store.create_notification(Notification(
                    recipient_id=event.recipient_id,
                    type=notification_type,
                    category=category,
                    channel=channel,
                    reference_id=event.reference_id,
                    title=event.title,
                    message=event.message,
                    action_url=event.action_url,
                ))

        logger.info(
            f"Notification {notification.id}: {notification_type.value} "
            f"({category.value}) -> {event.recipient_id} via {channel.value}"
        )
        return notification

    # =========================================================================
    # DELIVERY STATUS
    # =========================================================================

    async def _transition(self, notification_id: str, apply) -> Notification:
        if not notification_id:
            raise ValidationError("notification_id is required")
        async with self._locks.hold(f"notification:{notification_id}"):
            async with self._store.transaction():
                notification = await self._store.load_notification(
                    notification_id, for_update=True
                )
                if notification is None:
                    raise NotFound(f"Notification {notification_id} not found")
                apply(notification)
                await self._store.save_notification(notification)
                return notification

    async def mark_dispatched(self, notification_id: str) -> Notification:
        """Record that a PENDING notification was handed to delivery."""

        def apply(notification: Notification) -> None:
            if notification.delivery_status != NotificationDeliveryStatus.PENDING:
                raise ConflictError(
                    f"Notification {notification.id} is {notification.delivery_status.value}"
                )
            if notification.dispatched_at is not None:
                raise ConflictError(f"Notification {notification.id} already dispatched")
            notification.dispatched_at = utcnow()

        return await self._transition(notification_id, apply)

    async def record_delivery(
        self,
        notification_id: str,
        status: NotificationDeliveryStatus,
        error: str | None = None,
    ) -> Notification:
        """Record SENT or FAILED as reported by the delivery collaborator."""
        status = NotificationDeliveryStatus(status)
        if status == NotificationDeliveryStatus.PENDING:
            raise ValidationError("Delivery can only be reported as SENT or FAILED")

        def apply(notification: Notification) -> None:
            if notification.delivery_status != NotificationDeliveryStatus.PENDING:
                raise ConflictError(
                    f"Notification {notification.id} is already "
                    f"{notification.delivery_status.value}"
                )
            notification.delivery_status = status
            notification.error_message = error if status == NotificationDeliveryStatus.FAILED else None

        notification = await self._transition(notification_id, apply)
        if status == NotificationDeliveryStatus.FAILED:
            logger.warning(f"Notification {notification_id} failed: {error}")
        else:
            logger.info(f"Notification {notification_id} sent")
        return notification

    async def retry(self, notification_id: str) -> Notification:
        """
        Explicit retry: hand the notification to delivery again.

        Applies to FAILED notifications, and to PENDING ones whose hand-off
        ended with the collaborator unreachable (dispatched, no outcome).
        """

        def apply(notification: Notification) -> None:
            status = notification.delivery_status
            stalled = (
                status == NotificationDeliveryStatus.PENDING
                and notification.dispatched_at is not None
            )
            if status != NotificationDeliveryStatus.FAILED and not stalled:
                raise ConflictError(
                    f"Only failed or stalled notifications can be retried "
                    f"(is {status.value})"
                )
            notification.delivery_status = NotificationDeliveryStatus.PENDING
            notification.dispatched_at = None
            notification.error_message = None

        return await self._transition(notification_id, apply)
