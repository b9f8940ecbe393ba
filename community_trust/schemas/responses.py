"""Response schemas and converters from domain records."""

from datetime import datetime

from ..models import (
    ApprovalStatus,
    Comment,
    DeliveryChannel,
    Listing,
    Notification,
    NotificationCategory,
    NotificationDeliveryStatus,
    NotificationType,
    TrustAction,
    TrustActionKind,
    Vote,
)
from .base import Pagination, WireModel


class ListingResponse(WireModel):
    id: str
    author_id: str
    game_id: str
    device_id: str
    emulator_id: str
    performance_id: int
    notes: str | None
    status: ApprovalStatus
    processed_by: str | None = None
    processed_at: datetime | None = None
    processed_notes: str | None = None
    previous_listing_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class VoteResponse(WireModel):
    listing_id: str
    voter_id: str
    value: bool
    changed: bool = True


class CommentResponse(WireModel):
    id: str
    listing_id: str
    author_id: str
    content: str
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class TrustActionResponse(WireModel):
    id: str
    sequence: int
    user_id: str
    actor_id: str | None
    kind: TrustActionKind
    delta: int
    reference_id: str | None
    reverses_id: str | None
    note: str | None
    created_at: datetime


class TrustLevelResponse(WireModel):
    name: str
    min_score: int
    color: str
    description: str


class TrustStandingResponse(WireModel):
    user_id: str
    score: int
    level: TrustLevelResponse
    next_level: TrustLevelResponse | None = None


class NotificationResponse(WireModel):
    id: str
    title: str
    message: str
    type: NotificationType
    category: NotificationCategory
    channel: DeliveryChannel
    delivery_status: NotificationDeliveryStatus
    is_read: bool
    created_at: datetime
    action_url: str | None = None


class NotificationsPageResponse(WireModel):
    notifications: list[NotificationResponse]
    pagination: Pagination


class CountResponse(WireModel):
    count: int


class SuccessResponse(WireModel):
    success: bool = True


# =============================================================================
# CONVERTERS
# =============================================================================


def listing_to_response(listing: Listing) -> ListingResponse:
    return ListingResponse(
        id=listing.id,
        author_id=listing.author_id,
        game_id=listing.game_id,
        device_id=listing.device_id,
        emulator_id=listing.emulator_id,
        performance_id=listing.performance_id,
        notes=listing.notes,
        status=listing.status,
        processed_by=listing.processed_by,
        processed_at=listing.processed_at,
        processed_notes=listing.processed_notes,
        previous_listing_id=listing.previous_listing_id,
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )


def vote_to_response(vote: Vote, changed: bool = True) -> VoteResponse:
    return VoteResponse(
        listing_id=vote.listing_id,
        voter_id=vote.voter_id,
        value=vote.value,
        changed=changed,
    )


def comment_to_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        listing_id=comment.listing_id,
        author_id=comment.author_id,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        deleted_at=comment.deleted_at,
    )


def trust_action_to_response(action: TrustAction) -> TrustActionResponse:
    return TrustActionResponse(
        id=action.id,
        sequence=action.sequence,
        user_id=action.user_id,
        actor_id=action.actor_id,
        kind=action.kind,
        delta=action.delta,
        reference_id=action.reference_id,
        reverses_id=action.reverses_id,
        note=action.note,
        created_at=action.created_at,
    )


def notification_to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        title=notification.title,
        message=notification.message,
        type=notification.type,
        category=notification.category,
        channel=notification.channel,
        delivery_status=notification.delivery_status,
        is_read=notification.is_read,
        created_at=notification.created_at,
        action_url=notification.action_url,
    )
