"""SQLAlchemy ORM tables backing ``stores.sql.SqlAlchemyStore``.

Types are kept portable (no PostgreSQL-only columns) so the same mapping
runs on PostgreSQL in production and SQLite in tests.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, StringIDMixin, TimestampMixin
from .enums import (
    ApprovalStatus,
    DeliveryChannel,
    NotificationCategory,
    NotificationDeliveryStatus,
    NotificationType,
    TrustActionKind,
)


def _enum(enum_cls, name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=lambda x: [e.value for e in x])


# =============================================================================
# LISTINGS
# =============================================================================


class ListingRow(Base, StringIDMixin, TimestampMixin):
    """A compatibility listing and its approval state."""

    __tablename__ = "listings"

    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    game_id: Mapped[str] = mapped_column(String(64), nullable=False)
    device_id: Mapped[str] = mapped_column(String(64), nullable=False)
    emulator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    performance_id: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    custom_field_values: Mapped[list] = mapped_column(JSON, default=list)
    status: Mapped[ApprovalStatus] = mapped_column(
        _enum(ApprovalStatus, "approval_status"),
        default=ApprovalStatus.PENDING,
        nullable=False,
    )
    processed_by: Mapped[str | None] = mapped_column(String(36))
    processed_at: Mapped[datetime | None] = mapped_column()
    processed_notes: Mapped[str | None] = mapped_column(Text)
    previous_listing_id: Mapped[str | None] = mapped_column(
        ForeignKey("listings.id"), nullable=True, unique=True
    )  # A listing is resubmitted at most once

    __table_args__ = (
        Index("idx_listings_author", "author_id"),
        Index("idx_listings_status", "status"),
    )


class VoteRow(Base, TimestampMixin):
    """One vote per (listing, voter); re-voting updates the row."""

    __tablename__ = "listing_votes"

    listing_id: Mapped[str] = mapped_column(
        ForeignKey("listings.id"), primary_key=True
    )
    voter_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    value: Mapped[bool] = mapped_column(Boolean, nullable=False)


class CommentRow(Base, StringIDMixin, TimestampMixin):
    __tablename__ = "comments"

    listing_id: Mapped[str] = mapped_column(ForeignKey("listings.id"), nullable=False)
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        Index("idx_comments_listing", "listing_id", "created_at"),
    )


# =============================================================================
# TRUST LEDGER (APPEND-ONLY)
# =============================================================================


class TrustActionRow(Base):
    """Append-only trust fact. Rows are inserted, never updated or deleted."""

    __tablename__ = "trust_actions"

    sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(36))
    kind: Mapped[TrustActionKind] = mapped_column(
        _enum(TrustActionKind, "trust_action_kind"), nullable=False
    )
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_id: Mapped[str | None] = mapped_column(String(128))
    reverses_id: Mapped[str | None] = mapped_column(String(36), unique=True)
    note: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        Index("idx_trust_actions_user", "user_id", "sequence"),
        Index("idx_trust_actions_reference", "user_id", "kind", "reference_id"),
    )


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class NotificationRow(Base, StringIDMixin):
    """Routed notification; (recipient, type, reference) is the idempotency key."""

    __tablename__ = "notifications"

    recipient_id: Mapped[str] = mapped_column(String(36), nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        _enum(NotificationType, "notification_type"), nullable=False
    )
    category: Mapped[NotificationCategory] = mapped_column(
        _enum(NotificationCategory, "notification_category"), nullable=False
    )
    channel: Mapped[DeliveryChannel] = mapped_column(
        _enum(DeliveryChannel, "delivery_channel"), nullable=False
    )
    delivery_status: Mapped[NotificationDeliveryStatus] = mapped_column(
        _enum(NotificationDeliveryStatus, "notification_delivery_status"),
        default=NotificationDeliveryStatus.PENDING,
        nullable=False,
    )
    reference_id: Mapped[str] = mapped_column(String(128), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    action_url: Mapped[str | None] = mapped_column(String(500))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text)
    dispatched_at: Mapped[datetime | None] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("recipient_id", "type", "reference_id", name="uq_notifications_key"),
        Index("idx_notifications_recipient", "recipient_id", "created_at"),
        Index("idx_notifications_status", "delivery_status", "created_at"),
    )


class ChannelPreferenceRow(Base):
    """Per-user, per-category delivery channel preference."""

    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    category: Mapped[NotificationCategory] = mapped_column(
        _enum(NotificationCategory, "preference_category"), primary_key=True
    )
    channel: Mapped[DeliveryChannel] = mapped_column(
        _enum(DeliveryChannel, "preference_channel"), nullable=False
    )

    __table_args__ = (
        CheckConstraint("channel IN ('IN_APP', 'EMAIL', 'BOTH')", name="channel_valid"),
    )
