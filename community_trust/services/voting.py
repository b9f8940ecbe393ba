"""Listing votes: at most one per (listing, voter), replaced on re-vote."""

import logging
from dataclasses import dataclass, field

from ..core.locks import KeyedLocks
from ..models import Actor, NotificationType, Role, TrustAction, Vote, utcnow
from ..schemas import GetUserVoteInput, VoteListingInput
from ..stores.base import PolicyStore
from .approval_workflow import listing_url
from .errors import NotFound, ValidationError
from .notification_router import NotificationEvent, NotificationRouter
from .permissions import PermissionEvaluator
from .trust_ledger import TrustLedger

logger = logging.getLogger(__name__)


@dataclass
class VoteOutcome:
    vote: Vote
    previous: bool | None
    actions: list[TrustAction] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.previous != self.vote.value


class VotingService:
    """
    Casts and replaces votes.

    Two concurrent votes by the same voter on the same listing serialize;
    the later one wins and the ledger carries exactly one net effect.
    """

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

    async def vote(self, data: VoteListingInput, voter: Actor) -> VoteOutcome:
        self._permissions.require(
            self._permissions.can_perform(voter.role, Role.USER),
            "vote",
        )
        if not voter.user_id:
            raise ValidationError("An authenticated voter is required")

        async with self._locks.hold(f"vote:{data.listing_id}:{voter.user_id}"):
            async with self._store.transaction():
                # The listing row lock also covers a first vote, before any vote row exists
                listing = await self._store.load_listing(data.listing_id, for_update=True)
                if listing is None:
                    raise NotFound(f"Listing {data.listing_id} not found")

                existing = await self._store.load_vote(
                    listing.id, voter.user_id, for_update=True
                )
                previous = existing.value if existing else None
                if previous == data.value:
                    return VoteOutcome(vote=existing, previous=previous)

                now = utcnow()
                vote = await self._store.upsert_vote(Vote(
                    listing_id=listing.id,
                    voter_id=voter.user_id,
                    value=data.value,
                    created_at=existing.created_at if existing else now,
                    updated_at=now if existing else None,
                ))
                effect = await self._ledger.apply_vote_change(
                    listing, voter.user_id, previous, data.value
                )

                if listing.author_id != voter.user_id:
                    await self._router.notify(NotificationEvent(
                        recipient_id=listing.author_id,
                        type=(
                            NotificationType.LISTING_VOTE_UP if data.value
                            else NotificationType.LISTING_VOTE_DOWN
                        ),
                        reference_id=f"{listing.id}:{voter.user_id}",
                        title="New vote on your listing",
                        message=(
                            "Someone confirmed your listing works."
                            if data.value
                            else "Someone reported your listing does not work for them."
                        ),
                        action_url=listing_url(listing.id),
                    ))

        logger.info(
            f"Vote {'up' if data.value else 'down'} on {data.listing_id} by {voter.user_id} "
            f"(was {previous}, net {effect.net:+d})"
        )
        return VoteOutcome(vote=vote, previous=previous, actions=effect.actions)

    async def get_user_vote(self, data: GetUserVoteInput, voter: Actor) -> bool | None:
        if not voter.user_id:
            raise ValidationError("An authenticated voter is required")
        vote = await self._store.load_vote(data.listing_id, voter.user_id)
        return vote.value if vote else None
