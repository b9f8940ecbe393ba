"""
Persistence collaborator interface.

The policy services are written against this abstract store and never
assume a storage engine. Two adapters ship with the package:

- ``stores.memory.InMemoryStore``: process-local, used by default and in tests
- ``stores.sql.SqlAlchemyStore``: SQLAlchemy async ORM (PostgreSQL / SQLite)

Contract shared by every adapter:
1. ``transaction()`` groups writes; if the block raises, none of its writes
   remain. Nested ``transaction()`` blocks join the outer one.
2. ``append_trust_action`` never modifies existing entries and assigns a
   strictly increasing ``sequence``.
3. ``sum_trust_actions`` reflects whole entries only.
4. ``create_notification`` is idempotent on (recipient, type, reference):
   if a record with that key exists it is returned instead.
5. Engine failures surface as ``DependencyUnavailable``.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager

from ..models import (
    Comment,
    DeliveryChannel,
    Listing,
    Notification,
    NotificationCategory,
    NotificationType,
    TrustAction,
    TrustActionKind,
    Vote,
)


class PolicyStore(ABC):
    """Abstract persistence collaborator for the policy core."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Group the writes made inside the block into one atomic unit."""

    # =========================================================================
    # LISTINGS
    # =========================================================================

    @abstractmethod
    async def create_listing(self, listing: Listing) -> Listing:
        """Insert; ConflictError if ``previous_listing_id`` was already resubmitted."""

    @abstractmethod
    async def load_listing(self, listing_id: str, for_update: bool = False) -> Listing | None:
        """Load a listing; ``for_update`` takes a row lock where the engine has one."""

    @abstractmethod
    async def save_listing_status(self, listing: Listing) -> None:
        """Persist ``status`` and the moderation fields of an existing listing."""

    @abstractmethod
    async def find_resubmission(self, listing_id: str) -> Listing | None:
        """The listing created as a resubmission of ``listing_id``, if any."""

    # =========================================================================
    # TRUST LEDGER
    # =========================================================================

    @abstractmethod
    async def append_trust_action(self, action: TrustAction) -> TrustAction:
        """Append an entry and return it with its assigned sequence number."""

    @abstractmethod
    async def sum_trust_actions(self, user_id: str) -> int:
        ...

    @abstractmethod
    async def list_trust_actions(self, user_id: str) -> list[TrustAction]:
        """All entries for a user, oldest first."""

    @abstractmethod
    async def load_trust_action(self, action_id: str) -> TrustAction | None:
        ...

    @abstractmethod
    async def find_trust_action(
        self,
        user_id: str,
        kind: TrustActionKind,
        reference_id: str,
    ) -> TrustAction | None:
        ...

    @abstractmethod
    async def find_reversal(self, action_id: str) -> TrustAction | None:
        """The compensating entry that reverses ``action_id``, if any."""

    # =========================================================================
    # VOTES
    # =========================================================================

    @abstractmethod
    async def load_vote(
        self, listing_id: str, voter_id: str, for_update: bool = False
    ) -> Vote | None:
        """With ``for_update``, the vote row stays locked until the transaction ends."""

    @abstractmethod
    async def upsert_vote(self, vote: Vote) -> Vote:
        ...

    # =========================================================================
    # COMMENTS
    # =========================================================================

    @abstractmethod
    async def create_comment(self, comment: Comment) -> Comment:
        ...

    @abstractmethod
    async def load_comment(self, comment_id: str) -> Comment | None:
        ...

    @abstractmethod
    async def save_comment(self, comment: Comment) -> None:
        ...

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    @abstractmethod
    async def create_notification(self, notification: Notification) -> Notification:
        """Insert, or return the existing record with the same idempotency key."""

    @abstractmethod
    async def load_notification(
        self, notification_id: str, for_update: bool = False
    ) -> Notification | None:
        ...

    @abstractmethod
    async def find_notification(
        self,
        recipient_id: str,
        type: NotificationType,
        reference_id: str,
    ) -> Notification | None:
        ...

    @abstractmethod
    async def save_notification(self, notification: Notification) -> None:
        """Persist delivery state only: status, error and dispatch time."""

    @abstractmethod
    async def mark_notification_read(self, notification_id: str) -> bool:
        """Set ``is_read`` without touching delivery state; True if it changed."""

    @abstractmethod
    async def list_notifications(
        self,
        recipient_id: str,
        unread_only: bool = False,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Notification], int]:
        """Newest first, with the total matching count."""

    @abstractmethod
    async def count_unread(self, recipient_id: str) -> int:
        ...

    @abstractmethod
    async def mark_all_read(self, recipient_id: str) -> int:
        """Mark every unread notification read; returns how many changed."""

    @abstractmethod
    async def list_undispatched(self, limit: int = 100) -> list[Notification]:
        """PENDING notifications not yet handed to delivery, oldest first."""

    @abstractmethod
    async def load_channel_preference(
        self,
        user_id: str,
        category: NotificationCategory,
    ) -> DeliveryChannel | None:
        ...

    @abstractmethod
    async def save_channel_preference(
        self,
        user_id: str,
        category: NotificationCategory,
        channel: DeliveryChannel,
    ) -> None:
        ...
