"""
Tests for the Trust Ledger - Verifying Append-Only Guarantees.

These tests verify:
1. SCORE: a user's score is always the sum of their entries
2. APPEND: entries get strictly increasing sequence numbers
3. ADMIN: adjustments and reversals are gated and compensate, never edit
4. LEVELS: scores map onto configured trust levels
5. ATOMICITY: writes inside a failed transaction are undone
"""

import asyncio

import pytest

from community_trust.core.config import TrustPointsPolicy
from community_trust.models import Actor, Listing, TrustActionKind
from community_trust.services import (
    ConflictError,
    NotFound,
    PermissionDenied,
    PolicyCore,
    ValidationError,
)


# =============================================================================
# TEST: SCORE
# =============================================================================


class TestScore:
    """Score is a derived read over the ledger."""

    async def test_new_user_scores_zero(self, core: PolicyCore):
        assert await core.ledger.score_for("nobody") == 0

    async def test_score_is_sum_of_entries(self, core: PolicyCore):
        await core.ledger.apply_action("u1", TrustActionKind.LISTING_CREATED, 3)
        await core.ledger.apply_action("u1", TrustActionKind.LISTING_REJECTED, -2)
        await core.ledger.apply_action("u2", TrustActionKind.LISTING_CREATED, 7)

        history = await core.ledger.history_for("u1")
        assert await core.ledger.score_for("u1") == sum(a.delta for a in history) == 1
        assert await core.ledger.score_for("u2") == 7

    async def test_concurrent_appends_are_all_counted(self, core: PolicyCore):
        """Interleaved appends for one user lose nothing."""
        deltas = [1, -1, 5, 2, -3] * 20

        await asyncio.gather(*(
            core.ledger.apply_action("u1", TrustActionKind.LISTING_CREATED, d)
            for d in deltas
        ))

        assert await core.ledger.score_for("u1") == sum(deltas)
        assert len(await core.ledger.history_for("u1")) == len(deltas)

    async def test_sequence_is_strictly_increasing(self, core: PolicyCore):
        for _ in range(5):
            await core.ledger.apply_action("u1", TrustActionKind.LISTING_CREATED, 1)
        sequences = [a.sequence for a in await core.ledger.history_for("u1")]
        assert sequences == sorted(sequences)
        assert len(set(sequences)) == len(sequences)

    async def test_policy_action_uses_configured_points(
        self,
        core: PolicyCore,
        policy: TrustPointsPolicy,
    ):
        action = await core.ledger.apply_policy_action("u1", TrustActionKind.LISTING_APPROVED)
        assert action.delta == policy.listing_approved


class TestApplyActionValidation:
    async def test_missing_user_is_rejected(self, core: PolicyCore):
        with pytest.raises(ValidationError):
            await core.ledger.apply_action("", TrustActionKind.LISTING_CREATED, 1)

    async def test_non_integer_delta_is_rejected(self, core: PolicyCore):
        with pytest.raises(ValidationError):
            await core.ledger.apply_action("u1", TrustActionKind.LISTING_CREATED, 1.5)
        with pytest.raises(ValidationError):
            await core.ledger.apply_action("u1", TrustActionKind.LISTING_CREATED, True)
        assert await core.ledger.history_for("u1") == []


# =============================================================================
# TEST: VOTE NETTING
# =============================================================================


class TestVoteChange:
    """Replacing a vote leaves only the latest vote's effect."""

    @pytest.fixture
    def listing(self) -> Listing:
        return Listing(
            author_id="author",
            game_id="g",
            device_id="d",
            emulator_id="e",
            performance_id=1,
        )

    async def test_same_value_appends_nothing(self, core: PolicyCore, listing: Listing):
        effect = await core.ledger.apply_vote_change(listing, "voter", True, True)
        assert effect.actions == []

    async def test_flip_nets_to_new_vote(
        self,
        core: PolicyCore,
        listing: Listing,
        policy: TrustPointsPolicy,
    ):
        await core.ledger.apply_vote_change(listing, "voter", None, True)
        await core.ledger.apply_vote_change(listing, "voter", True, False)

        assert await core.ledger.score_for("author") == policy.listing_received_downvote
        assert await core.ledger.score_for("voter") == policy.downvote

    async def test_self_vote_does_not_credit_author(self, core: PolicyCore, listing: Listing):
        await core.ledger.apply_vote_change(listing, "author", None, True)
        kinds = [a.kind for a in await core.ledger.history_for("author")]
        assert TrustActionKind.LISTING_RECEIVED_UPVOTE not in kinds


# =============================================================================
# TEST: ADMINISTRATION
# =============================================================================


class TestAdminAdjust:
    """Manual adjustments by administrators."""

    async def test_positive_adjustment(self, core: PolicyCore, admin: Actor):
        action = await core.ledger.admin_adjust("u1", 15, admin, note="event winner")
        assert action.kind == TrustActionKind.ADMIN_ADJUSTMENT_POSITIVE
        assert action.actor_id == admin.user_id
        assert await core.ledger.score_for("u1") == 15

    async def test_negative_adjustment(self, core: PolicyCore, admin: Actor):
        action = await core.ledger.admin_adjust("u1", -4, admin)
        assert action.kind == TrustActionKind.ADMIN_ADJUSTMENT_NEGATIVE
        assert await core.ledger.score_for("u1") == -4

    async def test_zero_adjustment_is_rejected(self, core: PolicyCore, admin: Actor):
        with pytest.raises(ValidationError):
            await core.ledger.admin_adjust("u1", 0, admin)

    async def test_author_cannot_adjust(self, core: PolicyCore, author: Actor):
        """Unauthorized adjustments are refused, not clamped."""
        with pytest.raises(PermissionDenied):
            await core.ledger.admin_adjust("u1", 10, author)
        assert await core.ledger.history_for("u1") == []


class TestReverseAction:
    """Reversals are compensating entries, each at most once."""

    async def test_reversal_cancels_original(self, core: PolicyCore, admin: Actor):
        original = await core.ledger.apply_action("u1", TrustActionKind.LISTING_APPROVED, 5)

        reversal = await core.ledger.reverse_action(original.id, admin)

        assert reversal.delta == -5
        assert reversal.reverses_id == original.id
        assert await core.ledger.score_for("u1") == 0
        # The original entry is untouched
        history = await core.ledger.history_for("u1")
        assert history[0].id == original.id and history[0].delta == 5

    async def test_double_reversal_conflicts(self, core: PolicyCore, admin: Actor):
        original = await core.ledger.apply_action("u1", TrustActionKind.LISTING_APPROVED, 5)
        await core.ledger.reverse_action(original.id, admin)

        with pytest.raises(ConflictError):
            await core.ledger.reverse_action(original.id, admin)
        assert await core.ledger.score_for("u1") == 0

    async def test_concurrent_reversals_apply_once(self, core: PolicyCore, admin: Actor):
        original = await core.ledger.apply_action("u1", TrustActionKind.LISTING_APPROVED, 5)

        results = await asyncio.gather(
            core.ledger.reverse_action(original.id, admin),
            core.ledger.reverse_action(original.id, admin),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ConflictError) for r in results) == 1
        assert await core.ledger.score_for("u1") == 0

    async def test_reversal_of_reversal_conflicts(self, core: PolicyCore, admin: Actor):
        original = await core.ledger.apply_action("u1", TrustActionKind.LISTING_APPROVED, 5)
        reversal = await core.ledger.reverse_action(original.id, admin)

        with pytest.raises(ConflictError):
            await core.ledger.reverse_action(reversal.id, admin)

    async def test_unknown_action(self, core: PolicyCore, admin: Actor):
        with pytest.raises(NotFound):
            await core.ledger.reverse_action("missing", admin)

    async def test_user_cannot_reverse(self, core: PolicyCore, owner: Actor):
        original = await core.ledger.apply_action("u1", TrustActionKind.LISTING_APPROVED, 5)
        with pytest.raises(PermissionDenied):
            await core.ledger.reverse_action(original.id, owner)


# =============================================================================
# TEST: LEVELS
# =============================================================================


class TestTrustLevels:
    def test_levels_are_sorted(self, core: PolicyCore):
        thresholds = [level.min_score for level in core.ledger.levels()]
        assert thresholds == sorted(thresholds)

    def test_threshold_reaches_level(self, core: PolicyCore):
        levels = core.ledger.levels()
        assert core.ledger.level_for(levels[1].min_score) == levels[1]
        assert core.ledger.level_for(levels[1].min_score - 1) == levels[0]

    def test_negative_score_maps_to_lowest_level(self, core: PolicyCore):
        assert core.ledger.level_for(-50) == core.ledger.levels()[0]

    async def test_standing_reports_next_level(self, core: PolicyCore, admin: Actor):
        levels = core.ledger.levels()
        await core.ledger.admin_adjust("u1", levels[1].min_score, admin)

        standing = await core.ledger.standing_for("u1")

        assert standing.score == levels[1].min_score
        assert standing.level == levels[1]
        assert standing.next_level == levels[2]


# =============================================================================
# TEST: ATOMICITY
# =============================================================================


class TestTransactionRollback:
    async def test_entries_inside_failed_transaction_are_undone(self, core: PolicyCore):
        await core.ledger.apply_action("u1", TrustActionKind.LISTING_CREATED, 1)

        with pytest.raises(RuntimeError):
            async with core.store.transaction():
                await core.ledger.apply_action("u1", TrustActionKind.LISTING_APPROVED, 5)
                raise RuntimeError("delivery collaborator exploded")

        assert await core.ledger.score_for("u1") == 1
        assert len(await core.ledger.history_for("u1")) == 1
