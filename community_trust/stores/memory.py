"""In-memory ``PolicyStore`` for tests and single-process deployments."""

import copy
import itertools
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import replace

from ..models import (
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
from ..services.errors import ConflictError
from .base import PolicyStore

# Undo operations for writes made inside the current transaction.
_journal: ContextVar[list[Callable[[], None]] | None] = ContextVar(
    "memory_store_journal", default=None
)


class InMemoryStore(PolicyStore):
    """
    Process-local store.

    Records are copied on the way in and out so callers never share
    mutable state with the store. Writes inside ``transaction()`` register
    an undo step; if the block raises, the steps run in reverse.
    """

    def __init__(self):
        self._listings: dict[str, Listing] = {}
        self._ledger: list[TrustAction] = []
        self._ledger_by_user: dict[str, list[TrustAction]] = {}
        self._sequence = itertools.count(1)
        self._votes: dict[tuple[str, str], Vote] = {}
        self._comments: dict[str, Comment] = {}
        self._notifications: dict[str, Notification] = {}
        self._notification_keys: dict[tuple, str] = {}
        self._preferences: dict[tuple[str, NotificationCategory], DeliveryChannel] = {}

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if _journal.get() is not None:
            yield
            return
        journal: list[Callable[[], None]] = []
        token = _journal.set(journal)
        try:
            yield
        except BaseException:
            for undo in reversed(journal):
                undo()
            raise
        finally:
            _journal.reset(token)

    def _on_rollback(self, undo: Callable[[], None]) -> None:
        journal = _journal.get()
        if journal is not None:
            journal.append(undo)

    def _put(self, table: dict, key, value) -> None:
        """Write ``table[key]`` and register the inverse."""
        missing = object()
        previous = table.get(key, missing)
        table[key] = value

        def undo():
            if previous is missing:
                table.pop(key, None)
            else:
                table[key] = previous

        self._on_rollback(undo)

    # =========================================================================
    # LISTINGS
    # =========================================================================

    async def create_listing(self, listing: Listing) -> Listing:
        if listing.previous_listing_id is not None and any(
            c.previous_listing_id == listing.previous_listing_id
            for c in self._listings.values()
        ):
            raise ConflictError(
                f"Listing {listing.previous_listing_id} was already resubmitted"
            )
        self._put(self._listings, listing.id, copy.deepcopy(listing))
        return copy.deepcopy(listing)

    async def load_listing(self, listing_id: str, for_update: bool = False) -> Listing | None:
        listing = self._listings.get(listing_id)
        return copy.deepcopy(listing) if listing else None

    async def save_listing_status(self, listing: Listing) -> None:
        stored = self._listings.get(listing.id)
        if stored is None:
            raise KeyError(listing.id)
        updated = copy.deepcopy(stored)
        updated.status = listing.status
        updated.processed_by = listing.processed_by
        updated.processed_at = listing.processed_at
        updated.processed_notes = listing.processed_notes
        updated.updated_at = listing.updated_at
        self._put(self._listings, listing.id, updated)

    async def find_resubmission(self, listing_id: str) -> Listing | None:
        listing = next(
            (c for c in self._listings.values() if c.previous_listing_id == listing_id),
            None,
        )
        return copy.deepcopy(listing) if listing else None

    # =========================================================================
    # TRUST LEDGER
    # =========================================================================

    async def append_trust_action(self, action: TrustAction) -> TrustAction:
        stored = replace(action, sequence=next(self._sequence))
        self._ledger.append(stored)
        user_entries = self._ledger_by_user.setdefault(stored.user_id, [])
        user_entries.append(stored)

        def undo():
            self._ledger.remove(stored)
            user_entries.remove(stored)

        self._on_rollback(undo)
        return stored

    async def sum_trust_actions(self, user_id: str) -> int:
        return sum(a.delta for a in list(self._ledger_by_user.get(user_id, ())))

    async def list_trust_actions(self, user_id: str) -> list[TrustAction]:
        return list(self._ledger_by_user.get(user_id, ()))

    async def load_trust_action(self, action_id: str) -> TrustAction | None:
        return next((a for a in self._ledger if a.id == action_id), None)

    async def find_trust_action(
        self,
        user_id: str,
        kind: TrustActionKind,
        reference_id: str,
    ) -> TrustAction | None:
        return next(
            (
                a for a in self._ledger_by_user.get(user_id, ())
                if a.kind == kind and a.reference_id == reference_id
            ),
            None,
        )

    async def find_reversal(self, action_id: str) -> TrustAction | None:
        return next((a for a in self._ledger if a.reverses_id == action_id), None)

    # =========================================================================
    # VOTES
    # =========================================================================

    async def load_vote(
        self, listing_id: str, voter_id: str, for_update: bool = False
    ) -> Vote | None:
        vote = self._votes.get((listing_id, voter_id))
        return copy.deepcopy(vote) if vote else None

    async def upsert_vote(self, vote: Vote) -> Vote:
        self._put(self._votes, (vote.listing_id, vote.voter_id), copy.deepcopy(vote))
        return copy.deepcopy(vote)

    # =========================================================================
    # COMMENTS
    # =========================================================================

    async def create_comment(self, comment: Comment) -> Comment:
        self._put(self._comments, comment.id, copy.deepcopy(comment))
        return copy.deepcopy(comment)

    async def load_comment(self, comment_id: str) -> Comment | None:
        comment = self._comments.get(comment_id)
        return copy.deepcopy(comment) if comment else None

    async def save_comment(self, comment: Comment) -> None:
        if comment.id not in self._comments:
            raise KeyError(comment.id)
        self._put(self._comments, comment.id, copy.deepcopy(comment))

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def create_notification(self, notification: Notification) -> Notification:
        key = notification.idempotency_key
        existing_id = self._notification_keys.get(key)
        if existing_id is not None:
            return copy.deepcopy(self._notifications[existing_id])
        self._put(self._notifications, notification.id, copy.deepcopy(notification))
        self._put(self._notification_keys, key, notification.id)
        return copy.deepcopy(notification)

    async def load_notification(
        self, notification_id: str, for_update: bool = False
    ) -> Notification | None:
        notification = self._notifications.get(notification_id)
        return copy.deepcopy(notification) if notification else None

    async def find_notification(
        self,
        recipient_id: str,
        type: NotificationType,
        reference_id: str,
    ) -> Notification | None:
        existing_id = self._notification_keys.get((recipient_id, type, reference_id))
        if existing_id is None:
            return None
        return copy.deepcopy(self._notifications[existing_id])

    async def save_notification(self, notification: Notification) -> None:
        stored = self._notifications.get(notification.id)
        if stored is None:
            raise KeyError(notification.id)
        updated = copy.deepcopy(stored)
        updated.delivery_status = notification.delivery_status
        updated.error_message = notification.error_message
        updated.dispatched_at = notification.dispatched_at
        self._put(self._notifications, notification.id, updated)

    async def mark_notification_read(self, notification_id: str) -> bool:
        stored = self._notifications.get(notification_id)
        if stored is None or stored.is_read:
            return False
        updated = copy.deepcopy(stored)
        updated.is_read = True
        self._put(self._notifications, notification_id, updated)
        return True

    def _inbox(self, recipient_id: str, unread_only: bool) -> list[Notification]:
        items = [
            n for n in self._notifications.values()
            if n.recipient_id == recipient_id and not (unread_only and n.is_read)
        ]
        return sorted(items, key=lambda n: n.created_at, reverse=True)

    async def list_notifications(
        self,
        recipient_id: str,
        unread_only: bool = False,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Notification], int]:
        items = self._inbox(recipient_id, unread_only)
        page = items[offset:offset + limit]
        return [copy.deepcopy(n) for n in page], len(items)

    async def count_unread(self, recipient_id: str) -> int:
        return len(self._inbox(recipient_id, unread_only=True))

    async def mark_all_read(self, recipient_id: str) -> int:
        unread = self._inbox(recipient_id, unread_only=True)
        for notification in unread:
            updated = copy.deepcopy(notification)
            updated.is_read = True
            self._put(self._notifications, updated.id, updated)
        return len(unread)

    async def list_undispatched(self, limit: int = 100) -> list[Notification]:
        pending = [
            n for n in self._notifications.values()
            if n.delivery_status == NotificationDeliveryStatus.PENDING
            and n.dispatched_at is None
        ]
        pending.sort(key=lambda n: n.created_at)
        return [copy.deepcopy(n) for n in pending[:limit]]

    async def load_channel_preference(
        self,
        user_id: str,
        category: NotificationCategory,
    ) -> DeliveryChannel | None:
        return self._preferences.get((user_id, category))

    async def save_channel_preference(
        self,
        user_id: str,
        category: NotificationCategory,
        channel: DeliveryChannel,
    ) -> None:
        self._put(self._preferences, (user_id, category), channel)
