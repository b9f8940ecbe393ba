"""
Tests for Voting - one vote per (listing, voter), netted in the ledger.

These tests verify:
1. CAST: first vote records the vote and its trust effect
2. REPLACE: changing a vote leaves only the latest vote's effect
3. CONCURRENCY: racing votes by one voter net to a single effect
4. NOTIFY: the owner hears about votes from others, once per voter
"""

import asyncio

import pytest

from community_trust.core.config import Settings, TrustPointsPolicy
from community_trust.models import Actor, NotificationType, Role
from community_trust.schemas import GetUserVoteInput, VoteListingInput
from community_trust.services import NotFound, PermissionDenied, PolicyCore
from community_trust.stores import InMemoryStore


def vote_input(listing_id: str, value: bool) -> VoteListingInput:
    return VoteListingInput(listing_id=listing_id, value=value)


class RowLockRecordingStore(InMemoryStore):
    """Records which loads asked for a row lock."""

    def __init__(self):
        super().__init__()
        self.row_locks: list[tuple] = []

    async def load_listing(self, listing_id: str, for_update: bool = False):
        if for_update:
            self.row_locks.append(("listing", listing_id))
        return await super().load_listing(listing_id, for_update)

    async def load_vote(self, listing_id: str, voter_id: str, for_update: bool = False):
        if for_update:
            self.row_locks.append(("vote", listing_id, voter_id))
        return await super().load_vote(listing_id, voter_id, for_update)


# =============================================================================
# TEST: CAST AND REPLACE
# =============================================================================


class TestVote:
    async def test_first_upvote(
        self,
        core: PolicyCore,
        create_listing,
        owner: Actor,
        voter: Actor,
        policy: TrustPointsPolicy,
    ):
        listing = await create_listing()
        score_before = await core.ledger.score_for(owner.user_id)

        outcome = await core.voting.vote(vote_input(listing.id, True), voter)

        assert outcome.changed
        assert outcome.previous is None
        assert outcome.vote.value is True
        assert await core.ledger.score_for(owner.user_id) == (
            score_before + policy.listing_received_upvote
        )
        assert await core.voting.get_user_vote(GetUserVoteInput(listing_id=listing.id), voter)

    async def test_revote_nets_to_latest(
        self,
        core: PolicyCore,
        create_listing,
        owner: Actor,
        voter: Actor,
        policy: TrustPointsPolicy,
    ):
        """Upvote then downvote: the owner ends with only the downvote's effect."""
        listing = await create_listing()
        score_before = await core.ledger.score_for(owner.user_id)

        await core.voting.vote(vote_input(listing.id, True), voter)
        outcome = await core.voting.vote(vote_input(listing.id, False), voter)

        assert outcome.previous is True
        assert await core.ledger.score_for(owner.user_id) == (
            score_before + policy.listing_received_downvote
        )
        assert await core.ledger.score_for(voter.user_id) == policy.downvote
        assert await core.voting.get_user_vote(
            GetUserVoteInput(listing_id=listing.id), voter
        ) is False

    async def test_same_vote_twice_is_a_no_op(
        self,
        core: PolicyCore,
        create_listing,
        owner: Actor,
        voter: Actor,
    ):
        listing = await create_listing()
        await core.voting.vote(vote_input(listing.id, True), voter)
        history_before = await core.ledger.history_for(owner.user_id)

        outcome = await core.voting.vote(vote_input(listing.id, True), voter)

        assert not outcome.changed
        assert outcome.actions == []
        assert await core.ledger.history_for(owner.user_id) == history_before

    async def test_no_vote_yet(self, core: PolicyCore, create_listing, voter: Actor):
        listing = await create_listing()
        assert await core.voting.get_user_vote(
            GetUserVoteInput(listing_id=listing.id), voter
        ) is None

    async def test_unknown_listing(self, core: PolicyCore, voter: Actor):
        with pytest.raises(NotFound):
            await core.voting.vote(vote_input("missing", True), voter)

    async def test_actor_without_role_cannot_vote(self, core: PolicyCore, create_listing):
        listing = await create_listing()
        with pytest.raises(PermissionDenied):
            await core.voting.vote(vote_input(listing.id, True), Actor("anon", None))


# =============================================================================
# TEST: CONCURRENCY
# =============================================================================


class TestConcurrentVotes:
    async def test_racing_votes_leave_one_effect(
        self,
        core: PolicyCore,
        create_listing,
        owner: Actor,
        voter: Actor,
        policy: TrustPointsPolicy,
    ):
        """Whichever vote lands last, the ledger reflects exactly that vote."""
        listing = await create_listing()
        score_before = await core.ledger.score_for(owner.user_id)

        await asyncio.gather(*(
            core.voting.vote(vote_input(listing.id, value), voter)
            for value in [True, False, True, False, True]
        ))

        final = await core.voting.get_user_vote(GetUserVoteInput(listing_id=listing.id), voter)
        expected = (
            policy.listing_received_upvote if final
            else policy.listing_received_downvote
        )
        assert await core.ledger.score_for(owner.user_id) == score_before + expected

    async def test_workers_with_separate_locks_take_row_locks(
        self,
        settings: Settings,
        owner: Actor,
        voter: Actor,
        listing_input,
        policy: TrustPointsPolicy,
    ):
        """Two workers share only the store; the vote path asks it for row locks."""
        store = RowLockRecordingStore()
        first, second = PolicyCore(store, settings), PolicyCore(store, settings)
        listing = await first.workflow.create(listing_input, owner)
        score_before = await first.ledger.score_for(owner.user_id)

        await asyncio.gather(
            first.voting.vote(vote_input(listing.id, True), voter),
            second.voting.vote(vote_input(listing.id, False), voter),
        )

        assert ("listing", listing.id) in store.row_locks
        assert ("vote", listing.id, voter.user_id) in store.row_locks
        final = await first.voting.get_user_vote(GetUserVoteInput(listing_id=listing.id), voter)
        expected = (
            policy.listing_received_upvote if final
            else policy.listing_received_downvote
        )
        assert await first.ledger.score_for(owner.user_id) == score_before + expected


    async def test_many_voters_each_count(
        self,
        core: PolicyCore,
        create_listing,
        owner: Actor,
        policy: TrustPointsPolicy,
    ):
        listing = await create_listing()
        score_before = await core.ledger.score_for(owner.user_id)
        voters = [Actor(f"voter-{i}", Role.USER) for i in range(10)]

        await asyncio.gather(*(
            core.voting.vote(vote_input(listing.id, True), v) for v in voters
        ))

        assert await core.ledger.score_for(owner.user_id) == (
            score_before + len(voters) * policy.listing_received_upvote
        )


# =============================================================================
# TEST: NOTIFICATIONS
# =============================================================================


class TestVoteNotifications:
    async def test_owner_is_notified_once_per_voter(
        self,
        core: PolicyCore,
        create_listing,
        owner: Actor,
        voter: Actor,
    ):
        listing = await create_listing()

        await core.voting.vote(vote_input(listing.id, True), voter)
        await core.voting.vote(vote_input(listing.id, False), voter)
        await core.voting.vote(vote_input(listing.id, True), voter)

        notifications, total = await core.store.list_notifications(owner.user_id)
        types = sorted(n.type.value for n in notifications)
        assert total == 2
        assert types == [
            NotificationType.LISTING_VOTE_DOWN.value,
            NotificationType.LISTING_VOTE_UP.value,
        ]
        assert all(n.reference_id == f"{listing.id}:{voter.user_id}" for n in notifications)

    async def test_self_vote_is_silent(
        self,
        core: PolicyCore,
        create_listing,
        owner: Actor,
        policy: TrustPointsPolicy,
    ):
        """Voting on your own listing records the vote but moves nothing else."""
        listing = await create_listing()
        score_before = await core.ledger.score_for(owner.user_id)

        outcome = await core.voting.vote(vote_input(listing.id, True), owner)

        assert outcome.vote.value is True
        assert await core.ledger.score_for(owner.user_id) == score_before + policy.upvote
        _, total = await core.store.list_notifications(owner.user_id)
        assert total == 0
