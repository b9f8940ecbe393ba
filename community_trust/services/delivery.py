"""
Delivery: hands routed notifications to a transport.

This module is responsible for:
1. Picking up PENDING notifications that were never dispatched
2. Marking each as dispatched before handing it off
3. Leaving the SENT / FAILED outcome to the collaborator, which reports
   it back through ``NotificationRouter.record_delivery``

A collaborator that is unreachable raises ``DependencyUnavailable``; the
notification then stays PENDING and is not retried automatically.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from ..models import Notification, NotificationDeliveryStatus
from ..stores.base import PolicyStore
from .errors import DependencyUnavailable
from .notification_router import NotificationRouter

logger = logging.getLogger(__name__)


# =============================================================================
# COLLABORATORS
# =============================================================================


class DeliveryCollaborator(ABC):
    """Abstract transport for a single notification."""

    @abstractmethod
    async def deliver(self, notification: Notification) -> None:
        """
        Deliver one notification and report the outcome to the router.

        Raises:
            DependencyUnavailable: the transport could not be reached
        """
        pass


class LoggingDelivery(DeliveryCollaborator):
    """In-app delivery: the inbox is the transport, so only log and confirm."""

    def __init__(self, router: NotificationRouter):
        self._router = router

    async def deliver(self, notification: Notification) -> None:
        logger.info(
            f"[{notification.channel.value}] To: {notification.recipient_id}, "
            f"Type: {notification.type.value}, Title: {notification.title}"
        )
        await self._router.record_delivery(
            notification.id, NotificationDeliveryStatus.SENT
        )


class WebhookDelivery(DeliveryCollaborator):
    """POSTs each notification as JSON to a single endpoint."""

    def __init__(
        self,
        router: NotificationRouter,
        url: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._router = router
        self._url = url
        self._timeout = timeout_seconds
        self._client = client

    def _payload(self, notification: Notification) -> dict:
        return {
            "id": notification.id,
            "recipientId": notification.recipient_id,
            "type": notification.type.value,
            "category": notification.category.value,
            "channel": notification.channel.value,
            "title": notification.title,
            "message": notification.message,
            "actionUrl": notification.action_url,
            "createdAt": notification.created_at.isoformat(),
        }

    async def _post(self, client: httpx.AsyncClient, notification: Notification) -> httpx.Response:
        return await client.post(
            self._url,
            json=self._payload(notification),
            timeout=self._timeout,
        )

    async def deliver(self, notification: Notification) -> None:
        try:
            if self._client is not None:
                response = await self._post(self._client, notification)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, notification)
        except httpx.TransportError as e:
            raise DependencyUnavailable(f"Webhook unreachable: {e}") from e

        if response.is_success:
            await self._router.record_delivery(
                notification.id, NotificationDeliveryStatus.SENT
            )
        else:
            await self._router.record_delivery(
                notification.id,
                NotificationDeliveryStatus.FAILED,
                error=f"Webhook returned {response.status_code}",
            )


# =============================================================================
# DISPATCHER
# =============================================================================


class NotificationDispatcher:
    """Batch hand-off of undispatched notifications to a collaborator."""

    def __init__(
        self,
        store: PolicyStore,
        router: NotificationRouter,
        collaborator: DeliveryCollaborator,
    ):
        self._store = store
        self._router = router
        self._collaborator = collaborator

    async def dispatch_pending(self, batch_size: int = 100) -> tuple[int, int, list[str]]:
        """
        Dispatch one batch.

        Returns:
            (dispatched_count, unavailable_count, errors)
        """
        pending = await self._store.list_undispatched(limit=batch_size)

        dispatched = 0
        unavailable = 0
        errors = []

        for notification in pending:
            notification = await self._router.mark_dispatched(notification.id)
            try:
                await self._collaborator.deliver(notification)
                dispatched += 1
            except DependencyUnavailable as e:
                logger.error(f"Delivery of notification {notification.id} unavailable: {e}")
                unavailable += 1
                errors.append(f"Notification {notification.id}: {e.message}")

        if pending:
            logger.info(f"Dispatched {dispatched} notifications, {unavailable} unavailable")
        return dispatched, unavailable, errors
