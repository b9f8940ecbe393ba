"""
Approval Workflow: the listing lifecycle state machine.

    PENDING --approve--> APPROVED   (terminal)
    PENDING --reject---> REJECTED   (terminal)

Every transition is:
- gated on ADMIN or above
- serialized per listing id (keyed lock + row lock in SQL)
- atomic with its trust entry and owner notification
- reported as ConflictError when illegal, so retries never double-count
"""

import logging

from ..core.locks import KeyedLocks
from ..models import (
    Actor,
    ApprovalStatus,
    CustomFieldValue,
    Listing,
    NotificationType,
    Role,
    TrustActionKind,
    utcnow,
)
from ..schemas import CreateListingInput, VerifyListingInput
from ..stores.base import PolicyStore
from .errors import ConflictError, NotFound, ValidationError
from .notification_router import NotificationEvent, NotificationRouter
from .permissions import PermissionEvaluator
from .trust_ledger import TrustLedger

logger = logging.getLogger(__name__)

# The only legal moves; anything else is a conflict.
TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED}),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
}

if set(TRANSITIONS) != set(ApprovalStatus):
    raise RuntimeError("Every ApprovalStatus needs a TRANSITIONS entry")


def listing_url(listing_id: str) -> str:
    return f"/listing/{listing_id}"


class ApprovalWorkflow:
    """Sole writer of ``Listing.status``."""

    def __init__(
        self,
        store: PolicyStore,
        permissions: PermissionEvaluator,
        ledger: TrustLedger,
        router: NotificationRouter,
        locks: KeyedLocks | None = None,
    ):
        self._store = store
        self._permissions = permissions
        self._ledger = ledger
        self._router = router
        self._locks = locks or KeyedLocks()

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create(self, data: CreateListingInput, owner: Actor) -> Listing:
        """
        Create a PENDING listing and reward the contribution.

        The LISTING_CREATED entry is independent of the eventual outcome.
        """
        self._permissions.require(
            self._permissions.can_perform(owner.role, Role.USER),
            "create listings",
        )
        if not owner.user_id:
            raise ValidationError("An authenticated owner is required")

        listing = Listing(
            author_id=owner.user_id,
            game_id=data.game_id,
            device_id=data.device_id,
            emulator_id=data.emulator_id,
            performance_id=data.performance_id,
            notes=data.notes,
            custom_field_values=[
                CustomFieldValue(
                    custom_field_definition_id=v.custom_field_definition_id,
                    value=v.value,
                )
                for v in (data.custom_field_values or [])
            ],
        )
        return await self._create_internal(listing)

    async def resubmit(self, listing_id: str, owner: Actor) -> Listing:
        """
        Start a new review cycle for a REJECTED listing.

        The rejected listing stays rejected; a new PENDING listing with the
        same content is created and linked to it.
        """
        if not listing_id:
            raise ValidationError("listing_id is required")

        async with self._locks.hold(f"listing:{listing_id}"), self._store.transaction():
            previous = await self._get_listing_or_raise(listing_id, for_update=True)
            self._permissions.require(
                self._permissions.owns(owner.user_id, previous.author_id),
                "resubmit this listing",
            )
            if previous.status != ApprovalStatus.REJECTED:
                raise ConflictError(
                    f"Only rejected listings can be resubmitted (is {previous.status.value})"
                )
            if await self._store.find_resubmission(previous.id) is not None:
                raise ConflictError(f"Listing {previous.id} was already resubmitted")

            listing = Listing(
                author_id=previous.author_id,
                game_id=previous.game_id,
                device_id=previous.device_id,
                emulator_id=previous.emulator_id,
                performance_id=previous.performance_id,
                notes=previous.notes,
                custom_field_values=list(previous.custom_field_values),
                previous_listing_id=previous.id,
            )
            return await self._create_internal(listing)

    async def _create_internal(self, listing: Listing) -> Listing:
        async with self._store.transaction():
            listing = await self._store.create_listing(listing)
            await self._ledger.apply_policy_action(
                user_id=listing.author_id,
                kind=TrustActionKind.LISTING_CREATED,
                reference_id=listing.id,
                actor_id=listing.author_id,
            )
        logger.info(f"Listing {listing.id} created by {listing.author_id} (PENDING)")
        return listing

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def approve(self, data: VerifyListingInput, moderator: Actor) -> Listing:
        """PENDING -> APPROVED, rewarding and notifying the owner."""
        return await self._transition(
            data,
            moderator,
            target=ApprovalStatus.APPROVED,
            trust_kind=TrustActionKind.LISTING_APPROVED,
            notification_type=NotificationType.LISTING_APPROVED,
            title="Listing approved",
            message="Your listing has been approved and is now public.",
        )

    async def reject(self, data: VerifyListingInput, moderator: Actor) -> Listing:
        """PENDING -> REJECTED; the owner is told why when notes are given."""
        message = "Your listing was rejected."
        if data.notes:
            message = f"{message} Reason: {data.notes}"
        return await self._transition(
            data,
            moderator,
            target=ApprovalStatus.REJECTED,
            trust_kind=TrustActionKind.LISTING_REJECTED,
            notification_type=NotificationType.LISTING_REJECTED,
            title="Listing rejected",
            message=message,
        )

    async def _transition(
        self,
        data: VerifyListingInput,
        moderator: Actor,
        target: ApprovalStatus,
        trust_kind: TrustActionKind,
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> Listing:
        """
        Flow:
        1. Role gate (no side effects on denial)
        2. Lock the listing id
        3. Load with row lock, verify the move is legal
        4. Save status, append trust entry, route notification
        All of step 4 commits or rolls back together.
        """
        action = "approve listings" if target == ApprovalStatus.APPROVED else "reject listings"
        self._permissions.require(
            self._permissions.can_perform(moderator.role, Role.ADMIN),
            action,
        )

        async with self._locks.hold(f"listing:{data.listing_id}"):
            async with self._store.transaction():
                listing = await self._get_listing_or_raise(data.listing_id, for_update=True)

                if target not in TRANSITIONS[listing.status]:
                    logger.warning(
                        f"Illegal transition {listing.status.value} -> {target.value} "
                        f"on listing {listing.id}"
                    )
                    raise ConflictError(
                        f"Listing {listing.id} is already {listing.status.value}"
                    )

                now = utcnow()
                listing.status = target
                listing.processed_by = moderator.user_id
                listing.processed_at = now
                listing.processed_notes = data.notes
                listing.updated_at = now
                await self._store.save_listing_status(listing)

                await self._ledger.apply_policy_action(
                    user_id=listing.author_id,
                    kind=trust_kind,
                    reference_id=listing.id,
                    actor_id=moderator.user_id,
                )
                await self._router.notify(NotificationEvent(
                    recipient_id=listing.author_id,
                    type=notification_type,
                    reference_id=listing.id,
                    title=title,
                    message=message,
                    action_url=listing_url(listing.id),
                ))

        logger.info(f"Listing {listing.id} {target.value} by {moderator.user_id}")
        return listing

    # =========================================================================
    # READS
    # =========================================================================

    async def get_listing(self, listing_id: str) -> Listing:
        if not listing_id:
            raise ValidationError("listing_id is required")
        return await self._get_listing_or_raise(listing_id)

    async def _get_listing_or_raise(self, listing_id: str, for_update: bool = False) -> Listing:
        listing = await self._store.load_listing(listing_id, for_update=for_update)
        if listing is None:
            raise NotFound(f"Listing {listing_id} not found")
        return listing
