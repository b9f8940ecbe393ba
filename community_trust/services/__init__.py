"""Policy services for community trust."""

from .approval_workflow import TRANSITIONS, ApprovalWorkflow
from .comments import CommentService
from .container import PolicyCore
from .delivery import (
    DeliveryCollaborator,
    LoggingDelivery,
    NotificationDispatcher,
    WebhookDelivery,
)
from .errors import (
    ConflictError,
    DependencyUnavailable,
    NotFound,
    PermissionDenied,
    PolicyError,
    ValidationError,
)
from .notification_router import NotificationEvent, NotificationRouter, category_for
from .notifications import NotificationInbox, NotificationPage
from .permissions import AccessDecision, AccessReason, PermissionEvaluator
from .roles import RoleHierarchy
from .trust_ledger import TrustLedger, TrustStanding, VoteLedgerEffect
from .voting import VoteOutcome, VotingService

__all__ = [
    # Authorization
    "RoleHierarchy",
    "PermissionEvaluator",
    "AccessDecision",
    "AccessReason",
    # Trust
    "TrustLedger",
    "TrustStanding",
    "VoteLedgerEffect",
    # Listings
    "ApprovalWorkflow",
    "TRANSITIONS",
    "VotingService",
    "VoteOutcome",
    "CommentService",
    # Notifications
    "NotificationRouter",
    "NotificationEvent",
    "category_for",
    "NotificationInbox",
    "NotificationPage",
    "DeliveryCollaborator",
    "LoggingDelivery",
    "WebhookDelivery",
    "NotificationDispatcher",
    # Wiring
    "PolicyCore",
    # Errors
    "PolicyError",
    "PermissionDenied",
    "ConflictError",
    "NotFound",
    "ValidationError",
    "DependencyUnavailable",
]
