"""Store-agnostic domain records.

These are what the policy services read and write through a ``PolicyStore``.
Ledger entries are frozen; listings, comments and notifications are mutated
only by the service that owns the field in question.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from .enums import (
    ApprovalStatus,
    DeliveryChannel,
    NotificationCategory,
    NotificationDeliveryStatus,
    NotificationType,
    Role,
    TrustActionKind,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class Actor:
    """The acting principal, as supplied by the identity collaborator."""
    user_id: str | None
    role: Role | None


@dataclass(frozen=True)
class TrustAction:
    """An immutable, append-only trust fact.

    ``user_id`` is the subject whose score changes; ``actor_id`` is whoever
    caused the fact (voter, moderator, scheduler). ``sequence`` is assigned
    by the store on append and is strictly increasing.
    """
    user_id: str
    kind: TrustActionKind
    delta: int
    actor_id: str | None = None
    reference_id: str | None = None
    reverses_id: str | None = None
    note: str | None = None
    id: str = field(default_factory=new_id)
    sequence: int = 0
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class CustomFieldValue:
    custom_field_definition_id: str
    value: str


@dataclass
class Listing:
    """A user-submitted compatibility listing."""
    author_id: str
    game_id: str
    device_id: str
    emulator_id: str
    performance_id: int
    notes: str | None = None
    custom_field_values: list[CustomFieldValue] = field(default_factory=list)
    status: ApprovalStatus = ApprovalStatus.PENDING
    processed_by: str | None = None
    processed_at: datetime | None = None
    processed_notes: str | None = None
    previous_listing_id: str | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None


@dataclass
class Vote:
    listing_id: str
    voter_id: str
    value: bool
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None


@dataclass
class Comment:
    listing_id: str
    author_id: str
    content: str
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass
class Notification:
    """A routed notification awaiting (or past) delivery."""
    recipient_id: str
    type: NotificationType
    category: NotificationCategory
    channel: DeliveryChannel
    reference_id: str
    title: str
    message: str
    action_url: str | None = None
    delivery_status: NotificationDeliveryStatus = NotificationDeliveryStatus.PENDING
    is_read: bool = False
    error_message: str | None = None
    dispatched_at: datetime | None = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def idempotency_key(self) -> tuple[str, NotificationType, str]:
        return (self.recipient_id, self.type, self.reference_id)
