"""Comment service: ownership-aware create, edit and delete."""

import logging

from ..core.locks import KeyedLocks
from ..models import Actor, Comment, NotificationType, Role, utcnow
from ..schemas import CreateCommentInput, DeleteCommentInput, UpdateCommentInput
from ..stores.base import PolicyStore
from .approval_workflow import listing_url
from .errors import NotFound, ValidationError
from .notification_router import NotificationEvent, NotificationRouter
from .permissions import PermissionEvaluator

logger = logging.getLogger(__name__)


class CommentService:
    """
    Comments on listings.

    Authors may edit and delete their own comments. Others need SUPER_ADMIN
    to edit but only ADMIN to delete. Deletion is soft.
    """

    def __init__(
        self,
        store: PolicyStore,
        permissions: PermissionEvaluator,
        router: NotificationRouter,
        locks: KeyedLocks | None = None,
    ):
        self._store = store
        self._permissions = permissions
        self._router = router
        self._locks = locks or KeyedLocks()

    async def create_comment(self, data: CreateCommentInput, author: Actor) -> Comment:
        self._permissions.require(
            self._permissions.can_perform(author.role, Role.USER),
            "comment",
        )
        if not author.user_id:
            raise ValidationError("An authenticated author is required")

        async with self._store.transaction():
            listing = await self._store.load_listing(data.listing_id)
            if listing is None:
                raise NotFound(f"Listing {data.listing_id} not found")

            comment = await self._store.create_comment(Comment(
                listing_id=listing.id,
                author_id=author.user_id,
                content=data.content,
            ))
            if listing.author_id != author.user_id:
                await self._router.notify(NotificationEvent(
                    recipient_id=listing.author_id,
                    type=NotificationType.LISTING_COMMENT,
                    reference_id=comment.id,
                    title="New comment on your listing",
                    message=data.content[:140],
                    action_url=listing_url(listing.id),
                ))
        return comment

    async def update_comment(self, data: UpdateCommentInput, actor: Actor) -> Comment:
        async with self._locks.hold(f"comment:{data.comment_id}"):
            async with self._store.transaction():
                comment = await self._get_live_comment(data.comment_id)
                self._permissions.require(
                    self._permissions.can_edit_comment(actor, comment.author_id),
                    "edit this comment",
                )
                comment.content = data.content
                comment.updated_at = utcnow()
                await self._store.save_comment(comment)
        logger.info(f"Comment {comment.id} edited by {actor.user_id}")
        return comment

    async def delete_comment(self, data: DeleteCommentInput, actor: Actor) -> Comment:
        async with self._locks.hold(f"comment:{data.comment_id}"):
            async with self._store.transaction():
                comment = await self._get_live_comment(data.comment_id)
                self._permissions.require(
                    self._permissions.can_delete_comment(actor, comment.author_id),
                    "delete this comment",
                )
                comment.deleted_at = utcnow()
                await self._store.save_comment(comment)
        logger.info(f"Comment {comment.id} deleted by {actor.user_id}")
        return comment

    async def _get_live_comment(self, comment_id: str) -> Comment:
        comment = await self._store.load_comment(comment_id)
        if comment is None or comment.is_deleted:
            raise NotFound(f"Comment {comment_id} not found")
        return comment
