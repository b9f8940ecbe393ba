"""
Wire-level request shapes.

Field names and optionality are fixed by the clients already in the field;
only validation is added here.
"""

from pydantic import Field

from ..models import DeliveryChannel, NotificationCategory
from .base import WireModel


class CustomFieldValueInput(WireModel):
    custom_field_definition_id: str = Field(..., min_length=1)
    value: str


class CreateListingInput(WireModel):
    game_id: str = Field(..., min_length=1)
    device_id: str = Field(..., min_length=1)
    emulator_id: str = Field(..., min_length=1)
    performance_id: int
    notes: str | None = None
    custom_field_values: list[CustomFieldValueInput] | None = None


class VoteListingInput(WireModel):
    listing_id: str = Field(..., min_length=1)
    value: bool


class GetUserVoteInput(WireModel):
    listing_id: str = Field(..., min_length=1)


class VerifyListingInput(WireModel):
    """Moderation input for both approval and rejection."""
    listing_id: str = Field(..., min_length=1)
    notes: str | None = None


class CreateCommentInput(WireModel):
    content: str = Field(..., min_length=1)
    listing_id: str = Field(..., min_length=1)


class UpdateCommentInput(WireModel):
    comment_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class DeleteCommentInput(WireModel):
    comment_id: str = Field(..., min_length=1)


class GetNotificationsInput(WireModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    unread_only: bool = False


class MarkNotificationReadInput(WireModel):
    notification_id: str = Field(..., min_length=1)


class UpdateChannelPreferenceInput(WireModel):
    category: NotificationCategory
    channel: DeliveryChannel


class AdjustTrustInput(WireModel):
    """Manual trust adjustment by an administrator."""
    user_id: str = Field(..., min_length=1)
    delta: int
    note: str | None = Field(default=None, max_length=500)


class ReverseTrustActionInput(WireModel):
    action_id: str = Field(..., min_length=1)
    note: str | None = Field(default=None, max_length=500)
