"""
SQLAlchemy-backed ``PolicyStore``.

The ledger table is insert-only: this adapter never issues UPDATE or
DELETE against ``trust_actions``. Listing transitions load the row with
``FOR UPDATE`` so moderators on different processes serialize on the
database as well as on the in-process keyed locks.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import (
    ChannelPreferenceRow,
    Comment,
    CommentRow,
    CustomFieldValue,
    DeliveryChannel,
    Listing,
    ListingRow,
    Notification,
    NotificationCategory,
    NotificationDeliveryStatus,
    NotificationRow,
    NotificationType,
    TrustAction,
    TrustActionKind,
    TrustActionRow,
    Vote,
    VoteRow,
)
from ..services.errors import ConflictError, DependencyUnavailable
from .base import PolicyStore

logger = logging.getLogger(__name__)


# =============================================================================
# ROW <-> RECORD MAPPING
# =============================================================================


def _listing_from_row(row: ListingRow) -> Listing:
    return Listing(
        id=row.id,
        author_id=row.author_id,
        game_id=row.game_id,
        device_id=row.device_id,
        emulator_id=row.emulator_id,
        performance_id=row.performance_id,
        notes=row.notes,
        custom_field_values=[
            CustomFieldValue(
                custom_field_definition_id=v["custom_field_definition_id"],
                value=v["value"],
            )
            for v in (row.custom_field_values or [])
        ],
        status=row.status,
        processed_by=row.processed_by,
        processed_at=row.processed_at,
        processed_notes=row.processed_notes,
        previous_listing_id=row.previous_listing_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _action_from_row(row: TrustActionRow) -> TrustAction:
    return TrustAction(
        id=row.id,
        sequence=row.sequence,
        user_id=row.user_id,
        actor_id=row.actor_id,
        kind=row.kind,
        delta=row.delta,
        reference_id=row.reference_id,
        reverses_id=row.reverses_id,
        note=row.note,
        created_at=row.created_at,
    )


def _comment_from_row(row: CommentRow) -> Comment:
    return Comment(
        id=row.id,
        listing_id=row.listing_id,
        author_id=row.author_id,
        content=row.content,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )


def _notification_from_row(row: NotificationRow) -> Notification:
    return Notification(
        id=row.id,
        recipient_id=row.recipient_id,
        type=row.type,
        category=row.category,
        channel=row.channel,
        delivery_status=row.delivery_status,
        reference_id=row.reference_id,
        title=row.title,
        message=row.message,
        action_url=row.action_url,
        is_read=row.is_read,
        error_message=row.error_message,
        dispatched_at=row.dispatched_at,
        created_at=row.created_at,
    )


# =============================================================================
# STORE
# =============================================================================


class SqlAlchemyStore(PolicyStore):
    """PolicyStore over an ``async_sessionmaker``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._current: ContextVar[AsyncSession | None] = ContextVar(
            f"sql_store_session_{id(self)}", default=None
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._current.get() is not None:
            yield
            return
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    token = self._current.set(session)
                    try:
                        yield
                    finally:
                        self._current.reset(token)
        except SQLAlchemyError as e:
            logger.error(f"Database error, transaction rolled back: {e}")
            raise DependencyUnavailable(f"Store unavailable: {e}") from e

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """The transaction's session, or a short-lived one for a single call."""
        session = self._current.get()
        try:
            if session is not None:
                yield session
                return
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            raise DependencyUnavailable(f"Store unavailable: {e}") from e

    # =========================================================================
    # LISTINGS
    # =========================================================================

    async def create_listing(self, listing: Listing) -> Listing:
        async with self._session() as session:
            session.add(ListingRow(
                id=listing.id,
                author_id=listing.author_id,
                game_id=listing.game_id,
                device_id=listing.device_id,
                emulator_id=listing.emulator_id,
                performance_id=listing.performance_id,
                notes=listing.notes,
                custom_field_values=[
                    {
                        "custom_field_definition_id": v.custom_field_definition_id,
                        "value": v.value,
                    }
                    for v in listing.custom_field_values
                ],
                status=listing.status,
                previous_listing_id=listing.previous_listing_id,
                created_at=listing.created_at,
            ))
            try:
                await session.flush()
            except IntegrityError as e:
                if listing.previous_listing_id is None:
                    raise
                raise ConflictError(
                    f"Listing {listing.previous_listing_id} was already resubmitted"
                ) from e
        return listing

    async def load_listing(self, listing_id: str, for_update: bool = False) -> Listing | None:
        query = select(ListingRow).where(ListingRow.id == listing_id)
        if for_update:
            query = query.with_for_update()
        async with self._session() as session:
            row = (await session.execute(query)).scalar_one_or_none()
            return _listing_from_row(row) if row else None

    async def save_listing_status(self, listing: Listing) -> None:
        async with self._session() as session:
            row = await session.get(ListingRow, listing.id)
            if row is None:
                raise KeyError(listing.id)
            row.status = listing.status
            row.processed_by = listing.processed_by
            row.processed_at = listing.processed_at
            row.processed_notes = listing.processed_notes
            row.updated_at = listing.updated_at
            await session.flush()

    async def find_resubmission(self, listing_id: str) -> Listing | None:
        async with self._session() as session:
            result = await session.execute(
                select(ListingRow)
                .where(ListingRow.previous_listing_id == listing_id)
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return _listing_from_row(row) if row else None

    # =========================================================================
    # TRUST LEDGER
    # =========================================================================

    async def append_trust_action(self, action: TrustAction) -> TrustAction:
        async with self._session() as session:
            row = TrustActionRow(
                id=action.id,
                user_id=action.user_id,
                actor_id=action.actor_id,
                kind=action.kind,
                delta=action.delta,
                reference_id=action.reference_id,
                reverses_id=action.reverses_id,
                note=action.note,
                created_at=action.created_at,
            )
            session.add(row)
            await session.flush()
            return _action_from_row(row)

    async def sum_trust_actions(self, user_id: str) -> int:
        async with self._session() as session:
            result = await session.execute(
                select(func.coalesce(func.sum(TrustActionRow.delta), 0)).where(
                    TrustActionRow.user_id == user_id
                )
            )
            return int(result.scalar_one())

    async def list_trust_actions(self, user_id: str) -> list[TrustAction]:
        async with self._session() as session:
            result = await session.execute(
                select(TrustActionRow)
                .where(TrustActionRow.user_id == user_id)
                .order_by(TrustActionRow.sequence.asc())
            )
            return [_action_from_row(r) for r in result.scalars().all()]

    async def load_trust_action(self, action_id: str) -> TrustAction | None:
        async with self._session() as session:
            result = await session.execute(
                select(TrustActionRow).where(TrustActionRow.id == action_id)
            )
            row = result.scalar_one_or_none()
            return _action_from_row(row) if row else None

    async def find_trust_action(
        self,
        user_id: str,
        kind: TrustActionKind,
        reference_id: str,
    ) -> TrustAction | None:
        async with self._session() as session:
            result = await session.execute(
                select(TrustActionRow)
                .where(
                    TrustActionRow.user_id == user_id,
                    TrustActionRow.kind == kind,
                    TrustActionRow.reference_id == reference_id,
                )
                .order_by(TrustActionRow.sequence.asc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return _action_from_row(row) if row else None

    async def find_reversal(self, action_id: str) -> TrustAction | None:
        async with self._session() as session:
            result = await session.execute(
                select(TrustActionRow).where(TrustActionRow.reverses_id == action_id)
            )
            row = result.scalar_one_or_none()
            return _action_from_row(row) if row else None

    # =========================================================================
    # VOTES
    # =========================================================================

    async def load_vote(
        self, listing_id: str, voter_id: str, for_update: bool = False
    ) -> Vote | None:
        query = select(VoteRow).where(
            VoteRow.listing_id == listing_id,
            VoteRow.voter_id == voter_id,
        )
        if for_update:
            query = query.with_for_update()
        async with self._session() as session:
            row = (await session.execute(query)).scalar_one_or_none()
            if row is None:
                return None
            return Vote(
                listing_id=row.listing_id,
                voter_id=row.voter_id,
                value=row.value,
                created_at=row.created_at,
                updated_at=row.updated_at,
            )

    async def upsert_vote(self, vote: Vote) -> Vote:
        async with self._session() as session:
            row = await session.get(VoteRow, (vote.listing_id, vote.voter_id))
            if row is None:
                session.add(VoteRow(
                    listing_id=vote.listing_id,
                    voter_id=vote.voter_id,
                    value=vote.value,
                    created_at=vote.created_at,
                ))
            else:
                row.value = vote.value
                row.updated_at = vote.updated_at
            await session.flush()
        return vote

    # =========================================================================
    # COMMENTS
    # =========================================================================

    async def create_comment(self, comment: Comment) -> Comment:
        async with self._session() as session:
            session.add(CommentRow(
                id=comment.id,
                listing_id=comment.listing_id,
                author_id=comment.author_id,
                content=comment.content,
                created_at=comment.created_at,
            ))
            await session.flush()
        return comment

    async def load_comment(self, comment_id: str) -> Comment | None:
        async with self._session() as session:
            row = await session.get(CommentRow, comment_id)
            return _comment_from_row(row) if row else None

    async def save_comment(self, comment: Comment) -> None:
        async with self._session() as session:
            row = await session.get(CommentRow, comment.id)
            if row is None:
                raise KeyError(comment.id)
            row.content = comment.content
            row.updated_at = comment.updated_at
            row.deleted_at = comment.deleted_at
            await session.flush()

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def create_notification(self, notification: Notification) -> Notification:
        async with self._session() as session:
            try:
                async with session.begin_nested():
                    session.add(NotificationRow(
                        id=notification.id,
                        recipient_id=notification.recipient_id,
                        type=notification.type,
                        category=notification.category,
                        channel=notification.channel,
                        delivery_status=notification.delivery_status,
                        reference_id=notification.reference_id,
                        title=notification.title,
                        message=notification.message,
                        action_url=notification.action_url,
                        is_read=notification.is_read,
                        created_at=notification.created_at,
                    ))
                return notification
            except IntegrityError:
                # Same (recipient, type, reference) written by another process
                existing = await self._find_notification_row(
                    session,
                    notification.recipient_id,
                    notification.type,
                    notification.reference_id,
                )
                if existing is None:
                    raise
                return _notification_from_row(existing)

    async def _find_notification_row(
        self,
        session: AsyncSession,
        recipient_id: str,
        type: NotificationType,
        reference_id: str,
    ) -> NotificationRow | None:
        result = await session.execute(
            select(NotificationRow).where(
                NotificationRow.recipient_id == recipient_id,
                NotificationRow.type == type,
                NotificationRow.reference_id == reference_id,
            )
        )
        return result.scalar_one_or_none()

    async def load_notification(
        self, notification_id: str, for_update: bool = False
    ) -> Notification | None:
        query = select(NotificationRow).where(NotificationRow.id == notification_id)
        if for_update:
            query = query.with_for_update()
        async with self._session() as session:
            row = (await session.execute(query)).scalar_one_or_none()
            return _notification_from_row(row) if row else None

    async def find_notification(
        self,
        recipient_id: str,
        type: NotificationType,
        reference_id: str,
    ) -> Notification | None:
        async with self._session() as session:
            row = await self._find_notification_row(session, recipient_id, type, reference_id)
            return _notification_from_row(row) if row else None

    async def save_notification(self, notification: Notification) -> None:
        async with self._session() as session:
            row = await session.get(NotificationRow, notification.id)
            if row is None:
                raise KeyError(notification.id)
            row.delivery_status = notification.delivery_status
            row.error_message = notification.error_message
            row.dispatched_at = notification.dispatched_at
            await session.flush()

    async def mark_notification_read(self, notification_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                update(NotificationRow)
                .where(
                    NotificationRow.id == notification_id,
                    NotificationRow.is_read.is_(False),
                )
                .values(is_read=True)
            )
            return result.rowcount == 1

    async def list_notifications(
        self,
        recipient_id: str,
        unread_only: bool = False,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Notification], int]:
        conditions = [NotificationRow.recipient_id == recipient_id]
        if unread_only:
            conditions.append(NotificationRow.is_read.is_(False))

        async with self._session() as session:
            total = (await session.execute(
                select(func.count()).select_from(NotificationRow).where(*conditions)
            )).scalar_one()
            result = await session.execute(
                select(NotificationRow)
                .where(*conditions)
                .order_by(NotificationRow.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return [_notification_from_row(r) for r in result.scalars().all()], total

    async def count_unread(self, recipient_id: str) -> int:
        async with self._session() as session:
            result = await session.execute(
                select(func.count()).select_from(NotificationRow).where(
                    NotificationRow.recipient_id == recipient_id,
                    NotificationRow.is_read.is_(False),
                )
            )
            return result.scalar_one()

    async def mark_all_read(self, recipient_id: str) -> int:
        async with self._session() as session:
            result = await session.execute(
                update(NotificationRow)
                .where(
                    NotificationRow.recipient_id == recipient_id,
                    NotificationRow.is_read.is_(False),
                )
                .values(is_read=True)
            )
            return result.rowcount

    async def list_undispatched(self, limit: int = 100) -> list[Notification]:
        async with self._session() as session:
            result = await session.execute(
                select(NotificationRow)
                .where(
                    NotificationRow.delivery_status == NotificationDeliveryStatus.PENDING,
                    NotificationRow.dispatched_at.is_(None),
                )
                .order_by(NotificationRow.created_at.asc())
                .limit(limit)
            )
            return [_notification_from_row(r) for r in result.scalars().all()]

    async def load_channel_preference(
        self,
        user_id: str,
        category: NotificationCategory,
    ) -> DeliveryChannel | None:
        async with self._session() as session:
            row = await session.get(ChannelPreferenceRow, (user_id, category))
            return row.channel if row else None

    async def save_channel_preference(
        self,
        user_id: str,
        category: NotificationCategory,
        channel: DeliveryChannel,
    ) -> None:
        async with self._session() as session:
            row = await session.get(ChannelPreferenceRow, (user_id, category))
            if row is None:
                session.add(ChannelPreferenceRow(
                    user_id=user_id, category=category, channel=channel
                ))
            else:
                row.channel = channel
            await session.flush()
