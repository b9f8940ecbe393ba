"""Tests for the delivery dispatcher and its collaborators."""

import httpx
import pytest

from community_trust.models import Notification, NotificationDeliveryStatus, NotificationType
from community_trust.services import (
    DeliveryCollaborator,
    DependencyUnavailable,
    LoggingDelivery,
    NotificationDispatcher,
    NotificationEvent,
    PolicyCore,
    WebhookDelivery,
)


class UnreachableDelivery(DeliveryCollaborator):
    async def deliver(self, notification: Notification) -> None:
        raise DependencyUnavailable("smtp relay down")


async def notify(core: PolicyCore, reference_id: str = "ref-1") -> Notification:
    return await core.router.notify(NotificationEvent(
        recipient_id="user-1",
        type=NotificationType.LISTING_APPROVED,
        reference_id=reference_id,
        title="Listing approved",
        message="Your listing has been approved and is now public.",
    ))


# =============================================================================
# TEST: DISPATCHER
# =============================================================================


class TestDispatcher:
    async def test_logging_delivery_marks_sent(self, core: PolicyCore):
        created = await notify(core)
        dispatcher = NotificationDispatcher(core.store, core.router, LoggingDelivery(core.router))

        dispatched, unavailable, errors = await dispatcher.dispatch_pending()

        assert (dispatched, unavailable, errors) == (1, 0, [])
        stored = await core.store.load_notification(created.id)
        assert stored.delivery_status == NotificationDeliveryStatus.SENT
        assert stored.dispatched_at is not None

    async def test_dispatch_is_not_repeated(self, core: PolicyCore):
        await notify(core)
        await core.dispatcher.dispatch_pending()

        dispatched, _, _ = await core.dispatcher.dispatch_pending()

        assert dispatched == 0

    async def test_unavailable_collaborator_leaves_pending(self, core: PolicyCore):
        created = await notify(core)
        dispatcher = NotificationDispatcher(core.store, core.router, UnreachableDelivery())

        dispatched, unavailable, errors = await dispatcher.dispatch_pending()

        assert (dispatched, unavailable) == (0, 1)
        assert "smtp relay down" in errors[0]
        stored = await core.store.load_notification(created.id)
        assert stored.delivery_status == NotificationDeliveryStatus.PENDING

    async def test_stalled_notification_can_be_retried(self, core: PolicyCore):
        """An unreachable hand-off is not retried automatically, only on request."""
        created = await notify(core)
        unreachable = NotificationDispatcher(core.store, core.router, UnreachableDelivery())
        await unreachable.dispatch_pending()

        assert await core.dispatcher.dispatch_pending() == (0, 0, [])

        retried = await core.router.retry(created.id)
        assert retried.dispatched_at is None

        dispatched, _, _ = await core.dispatcher.dispatch_pending()

        assert dispatched == 1
        stored = await core.store.load_notification(created.id)
        assert stored.delivery_status == NotificationDeliveryStatus.SENT

    async def test_batch_size(self, core: PolicyCore):
        for i in range(5):
            await notify(core, reference_id=f"ref-{i}")

        dispatched, _, _ = await core.dispatcher.dispatch_pending(batch_size=3)

        assert dispatched == 3


# =============================================================================
# TEST: WEBHOOK
# =============================================================================


class TestWebhookDelivery:
    async def test_success_marks_sent(self, core: PolicyCore):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(202)

        created = await notify(core)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            delivery = WebhookDelivery(core.router, "https://hooks.example.test/n", client=client)
            await delivery.deliver(created)

        assert len(received) == 1
        stored = await core.store.load_notification(created.id)
        assert stored.delivery_status == NotificationDeliveryStatus.SENT

    async def test_error_status_marks_failed(self, core: PolicyCore):
        created = await notify(core)
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        async with httpx.AsyncClient(transport=transport) as client:
            delivery = WebhookDelivery(core.router, "https://hooks.example.test/n", client=client)
            await delivery.deliver(created)

        stored = await core.store.load_notification(created.id)
        assert stored.delivery_status == NotificationDeliveryStatus.FAILED
        assert "500" in stored.error_message

    async def test_connection_error_is_unavailable(self, core: PolicyCore):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        created = await notify(core)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            delivery = WebhookDelivery(core.router, "https://hooks.example.test/n", client=client)
            with pytest.raises(DependencyUnavailable):
                await delivery.deliver(created)

        stored = await core.store.load_notification(created.id)
        assert stored.delivery_status == NotificationDeliveryStatus.PENDING
