"""Domain enums, records and SQLAlchemy ORM models."""

from .base import Base, StringIDMixin, TimestampMixin
from .enums import (
    NOTIFICATION_CATEGORIES,
    ROLE_RANKS,
    ApprovalStatus,
    DeliveryChannel,
    NotificationCategory,
    NotificationDeliveryStatus,
    NotificationType,
    Role,
    TrustActionKind,
)
from .orm import (
    ChannelPreferenceRow,
    CommentRow,
    ListingRow,
    NotificationRow,
    TrustActionRow,
    VoteRow,
)
from .records import (
    Actor,
    Comment,
    CustomFieldValue,
    Listing,
    Notification,
    TrustAction,
    Vote,
    new_id,
    utcnow,
)

__all__ = [
    # Base
    "Base",
    "StringIDMixin",
    "TimestampMixin",
    # Enums
    "Role",
    "ApprovalStatus",
    "TrustActionKind",
    "NotificationType",
    "NotificationCategory",
    "DeliveryChannel",
    "NotificationDeliveryStatus",
    "ROLE_RANKS",
    "NOTIFICATION_CATEGORIES",
    # Records
    "Actor",
    "TrustAction",
    "Listing",
    "CustomFieldValue",
    "Vote",
    "Comment",
    "Notification",
    "new_id",
    "utcnow",
    # ORM
    "ListingRow",
    "VoteRow",
    "CommentRow",
    "TrustActionRow",
    "NotificationRow",
    "ChannelPreferenceRow",
]
