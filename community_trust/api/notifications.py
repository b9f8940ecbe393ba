"""API routes for the caller's notification inbox."""

from typing import Annotated

from fastapi import APIRouter, Query

from ..core.dependencies import ActorDep, CoreDep
from ..schemas import (
    CountResponse,
    GetNotificationsInput,
    MarkNotificationReadInput,
    NotificationResponse,
    NotificationsPageResponse,
    Pagination,
    SuccessResponse,
    UpdateChannelPreferenceInput,
    notification_to_response,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationsPageResponse)
async def list_notifications(
    actor: ActorDep,
    core: CoreDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    unread_only: Annotated[bool, Query(alias="unreadOnly")] = False,
):
    """Newest first, paginated."""
    params = GetNotificationsInput(page=page, limit=limit, unread_only=unread_only)
    result = await core.inbox.list(params, actor)
    return NotificationsPageResponse(
        notifications=[notification_to_response(n) for n in result.notifications],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.get("/unread-count", response_model=CountResponse)
async def unread_count(actor: ActorDep, core: CoreDep):
    return CountResponse(count=await core.inbox.unread_count(actor))


@router.post("/read", response_model=NotificationResponse)
async def mark_read(data: MarkNotificationReadInput, actor: ActorDep, core: CoreDep):
    notification = await core.inbox.mark_read(data, actor)
    return notification_to_response(notification)


@router.post("/read-all", response_model=CountResponse)
async def mark_all_read(actor: ActorDep, core: CoreDep):
    return CountResponse(count=await core.inbox.mark_all_read(actor))


@router.put("/preferences", response_model=SuccessResponse)
async def update_channel_preference(
    data: UpdateChannelPreferenceInput,
    actor: ActorDep,
    core: CoreDep,
):
    """Choose the delivery channel for one notification category."""
    await core.router.set_channel_preference(actor.user_id, data.category, data.channel)
    return SuccessResponse()
