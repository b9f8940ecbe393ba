"""Pydantic schemas for the policy API."""

from .base import ErrorDetail, ErrorResponse, PaginatedResponse, Pagination, WireModel
from .inputs import (
    AdjustTrustInput,
    CreateCommentInput,
    CreateListingInput,
    CustomFieldValueInput,
    DeleteCommentInput,
    GetNotificationsInput,
    GetUserVoteInput,
    MarkNotificationReadInput,
    ReverseTrustActionInput,
    UpdateChannelPreferenceInput,
    UpdateCommentInput,
    VerifyListingInput,
    VoteListingInput,
)
from .responses import (
    CommentResponse,
    CountResponse,
    ListingResponse,
    NotificationResponse,
    NotificationsPageResponse,
    SuccessResponse,
    TrustActionResponse,
    TrustLevelResponse,
    TrustStandingResponse,
    VoteResponse,
    comment_to_response,
    listing_to_response,
    notification_to_response,
    trust_action_to_response,
    vote_to_response,
)

__all__ = [
    # Base
    "WireModel",
    "ErrorDetail",
    "ErrorResponse",
    "Pagination",
    "PaginatedResponse",
    # Inputs
    "CustomFieldValueInput",
    "CreateListingInput",
    "VoteListingInput",
    "GetUserVoteInput",
    "VerifyListingInput",
    "CreateCommentInput",
    "UpdateCommentInput",
    "DeleteCommentInput",
    "GetNotificationsInput",
    "MarkNotificationReadInput",
    "UpdateChannelPreferenceInput",
    "AdjustTrustInput",
    "ReverseTrustActionInput",
    # Responses
    "ListingResponse",
    "VoteResponse",
    "CommentResponse",
    "TrustActionResponse",
    "TrustLevelResponse",
    "TrustStandingResponse",
    "NotificationResponse",
    "NotificationsPageResponse",
    "CountResponse",
    "SuccessResponse",
    "listing_to_response",
    "vote_to_response",
    "comment_to_response",
    "trust_action_to_response",
    "notification_to_response",
]
