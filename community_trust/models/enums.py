"""Wire-visible enumerations.

The string values are shared with every client version and must never
change. Adding a member forces the lookup tables that key on the enum
(role ranks, notification categories) to be extended, which is checked
at import time.
"""

from enum import Enum as PyEnum


class Role(str, PyEnum):
    """Account roles, ordered by authority (see ``ROLE_RANKS``)."""
    USER = "USER"
    AUTHOR = "AUTHOR"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class ApprovalStatus(str, PyEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TrustActionKind(str, PyEnum):
    """Kinds of trust-affecting facts recorded in the ledger."""
    UPVOTE = "UPVOTE"
    DOWNVOTE = "DOWNVOTE"
    LISTING_CREATED = "LISTING_CREATED"
    LISTING_APPROVED = "LISTING_APPROVED"
    LISTING_REJECTED = "LISTING_REJECTED"
    MONTHLY_ACTIVE_BONUS = "MONTHLY_ACTIVE_BONUS"
    LISTING_RECEIVED_UPVOTE = "LISTING_RECEIVED_UPVOTE"
    LISTING_RECEIVED_DOWNVOTE = "LISTING_RECEIVED_DOWNVOTE"
    ADMIN_ADJUSTMENT_POSITIVE = "ADMIN_ADJUSTMENT_POSITIVE"
    ADMIN_ADJUSTMENT_NEGATIVE = "ADMIN_ADJUSTMENT_NEGATIVE"


class NotificationType(str, PyEnum):
    """Types of notifications."""
    LISTING_COMMENT = "LISTING_COMMENT"
    LISTING_VOTE_UP = "LISTING_VOTE_UP"
    LISTING_VOTE_DOWN = "LISTING_VOTE_DOWN"
    COMMENT_REPLY = "COMMENT_REPLY"
    USER_MENTION = "USER_MENTION"
    NEW_DEVICE_LISTING = "NEW_DEVICE_LISTING"
    NEW_SOC_LISTING = "NEW_SOC_LISTING"
    GAME_ADDED = "GAME_ADDED"
    EMULATOR_UPDATED = "EMULATOR_UPDATED"
    MAINTENANCE_NOTICE = "MAINTENANCE_NOTICE"
    FEATURE_ANNOUNCEMENT = "FEATURE_ANNOUNCEMENT"
    POLICY_UPDATE = "POLICY_UPDATE"
    LISTING_APPROVED = "LISTING_APPROVED"
    LISTING_REJECTED = "LISTING_REJECTED"
    CONTENT_FLAGGED = "CONTENT_FLAGGED"
    ACCOUNT_WARNING = "ACCOUNT_WARNING"
    ROLE_CHANGED = "ROLE_CHANGED"


class NotificationCategory(str, PyEnum):
    ENGAGEMENT = "ENGAGEMENT"
    CONTENT = "CONTENT"
    SYSTEM = "SYSTEM"
    MODERATION = "MODERATION"


class DeliveryChannel(str, PyEnum):
    IN_APP = "IN_APP"
    EMAIL = "EMAIL"
    BOTH = "BOTH"


class NotificationDeliveryStatus(str, PyEnum):
    """Status of notification delivery."""
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


# =============================================================================
# FIXED LOOKUP TABLES
# =============================================================================

# Ranks are spaced so a new role can be slotted between two existing ones
# without renumbering anything already persisted or compared.
ROLE_RANKS: dict[Role, int] = {
    Role.USER: 10,
    Role.AUTHOR: 20,
    Role.ADMIN: 30,
    Role.SUPER_ADMIN: 40,
}

NOTIFICATION_CATEGORIES: dict[NotificationType, NotificationCategory] = {
    NotificationType.LISTING_COMMENT: NotificationCategory.ENGAGEMENT,
    NotificationType.LISTING_VOTE_UP: NotificationCategory.ENGAGEMENT,
    NotificationType.LISTING_VOTE_DOWN: NotificationCategory.ENGAGEMENT,
    NotificationType.COMMENT_REPLY: NotificationCategory.ENGAGEMENT,
    NotificationType.USER_MENTION: NotificationCategory.ENGAGEMENT,
    NotificationType.NEW_DEVICE_LISTING: NotificationCategory.CONTENT,
    NotificationType.NEW_SOC_LISTING: NotificationCategory.CONTENT,
    NotificationType.GAME_ADDED: NotificationCategory.CONTENT,
    NotificationType.EMULATOR_UPDATED: NotificationCategory.CONTENT,
    NotificationType.MAINTENANCE_NOTICE: NotificationCategory.SYSTEM,
    NotificationType.FEATURE_ANNOUNCEMENT: NotificationCategory.SYSTEM,
    NotificationType.POLICY_UPDATE: NotificationCategory.SYSTEM,
    NotificationType.LISTING_APPROVED: NotificationCategory.MODERATION,
    NotificationType.LISTING_REJECTED: NotificationCategory.MODERATION,
    NotificationType.CONTENT_FLAGGED: NotificationCategory.MODERATION,
    NotificationType.ACCOUNT_WARNING: NotificationCategory.MODERATION,
    NotificationType.ROLE_CHANGED: NotificationCategory.MODERATION,
}


def _check_exhaustive(table: dict, enum_cls: type[PyEnum]) -> None:
    missing = set(enum_cls) - set(table)
    if missing:
        names = ", ".join(sorted(m.value for m in missing))
        raise RuntimeError(f"{enum_cls.__name__} members without a table entry: {names}")


_check_exhaustive(ROLE_RANKS, Role)
_check_exhaustive(NOTIFICATION_CATEGORIES, NotificationType)

if len(set(ROLE_RANKS.values())) != len(ROLE_RANKS):
    raise RuntimeError("Role ranks must be unique")
