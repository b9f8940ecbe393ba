"""Wiring of the policy services around one store and one lock registry."""

from ..core.config import Settings
from ..core.locks import KeyedLocks
from ..stores.base import PolicyStore
from .approval_workflow import ApprovalWorkflow
from .comments import CommentService
from .delivery import (
    DeliveryCollaborator,
    LoggingDelivery,
    NotificationDispatcher,
    WebhookDelivery,
)
from .notification_router import NotificationRouter
from .notifications import NotificationInbox
from .permissions import PermissionEvaluator
from .roles import RoleHierarchy
from .trust_ledger import TrustLedger
from .voting import VotingService


class PolicyCore:
    """
    The assembled policy core.

    All services share a single ``KeyedLocks`` so that, for example, a
    listing transition and a resubmission of the same listing serialize.
    """

    def __init__(
        self,
        store: PolicyStore,
        settings: Settings,
        delivery: DeliveryCollaborator | None = None,
    ):
        self.store = store
        self.settings = settings
        self.locks = KeyedLocks()

        self.roles = RoleHierarchy()
        self.permissions = PermissionEvaluator(self.roles)
        self.ledger = TrustLedger(
            store,
            self.permissions,
            policy=settings.trust_points,
            levels=settings.trust_levels,
            locks=self.locks,
        )
        self.router = NotificationRouter(
            store,
            default_channel=settings.default_delivery_channel,
            locks=self.locks,
        )
        self.workflow = ApprovalWorkflow(
            store, self.permissions, self.ledger, self.router, self.locks
        )
        self.voting = VotingService(
            store, self.permissions, self.ledger, self.router, self.locks
        )
        self.comments = CommentService(store, self.permissions, self.router, self.locks)
        self.inbox = NotificationInbox(store, self.permissions)

        if delivery is None:
            if settings.delivery_webhook_url:
                delivery = WebhookDelivery(
                    self.router,
                    settings.delivery_webhook_url,
                    timeout_seconds=settings.delivery_timeout_seconds,
                )
            else:
                delivery = LoggingDelivery(self.router)
        self.dispatcher = NotificationDispatcher(store, self.router, delivery)
