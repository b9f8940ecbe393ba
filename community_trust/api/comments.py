"""API routes for comments."""

from fastapi import APIRouter, status

from ..core.dependencies import ActorDep, CoreDep
from ..schemas import (
    CommentResponse,
    CreateCommentInput,
    DeleteCommentInput,
    UpdateCommentInput,
    comment_to_response,
)

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(data: CreateCommentInput, actor: ActorDep, core: CoreDep):
    comment = await core.comments.create_comment(data, actor)
    return comment_to_response(comment)


@router.put("", response_model=CommentResponse)
async def update_comment(data: UpdateCommentInput, actor: ActorDep, core: CoreDep):
    """Edit a comment. Authors may edit their own; others need SUPER_ADMIN."""
    comment = await core.comments.update_comment(data, actor)
    return comment_to_response(comment)


@router.post("/delete", response_model=CommentResponse)
async def delete_comment(data: DeleteCommentInput, actor: ActorDep, core: CoreDep):
    """Soft-delete a comment. Authors may delete their own; others need ADMIN."""
    comment = await core.comments.delete_comment(data, actor)
    return comment_to_response(comment)
