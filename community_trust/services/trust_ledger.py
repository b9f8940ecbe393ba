"""
Trust Ledger: append-only record of trust-affecting facts.

This module implements the "no overwrite" principle for trust:
- Entries are NEVER updated or deleted
- A user's score is always the sum of their entries, recomputed by the store
- Corrections (vote changes, administrative reversals) are new
  compensating entries
"""

import logging
from dataclasses import dataclass, field

from ..core.config import TrustLevel, TrustPointsPolicy
from ..core.locks import KeyedLocks
from ..models import Actor, Listing, Role, TrustAction, TrustActionKind
from ..stores.base import PolicyStore
from .errors import ConflictError, NotFound, ValidationError
from .permissions import PermissionEvaluator

logger = logging.getLogger(__name__)


@dataclass
class TrustStanding:
    """A user's current score and the level it reaches."""
    user_id: str
    score: int
    level: TrustLevel
    next_level: TrustLevel | None = None


@dataclass
class VoteLedgerEffect:
    """Entries appended for one vote change, and their net sum."""
    actions: list[TrustAction] = field(default_factory=list)

    @property
    def net(self) -> int:
        return sum(a.delta for a in self.actions)


class TrustLedger:
    """
    Sole writer of trust facts.

    Guarantees:
    1. Entries are append-only; each gets a monotonic sequence from the store
    2. ``score_for`` equals the sum of the user's entries at read time
    3. Unauthorized adjustments are refused, never clamped
    """

    def __init__(
        self,
        store: PolicyStore,
        permissions: PermissionEvaluator,
        policy: TrustPointsPolicy,
        levels: list[TrustLevel],
        locks: KeyedLocks | None = None,
    ):
        if not levels:
            raise ValueError("At least one trust level is required")
        self._store = store
        self._permissions = permissions
        self._policy = policy
        self._levels = sorted(levels, key=lambda level: level.min_score)
        self._locks = locks or KeyedLocks()

    @property
    def policy(self) -> TrustPointsPolicy:
        return self._policy

    # =========================================================================
    # APPEND
    # =========================================================================

    async def apply_action(
        self,
        user_id: str,
        kind: TrustActionKind,
        delta: int,
        reference_id: str | None = None,
        actor_id: str | None = None,
        note: str | None = None,
        reverses_id: str | None = None,
    ) -> TrustAction:
        """Append one fact and return it as stored."""
        if not user_id:
            raise ValidationError("user_id is required")
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("delta must be an integer")

        action = await self._store.append_trust_action(TrustAction(
            user_id=user_id,
            kind=TrustActionKind(kind),
            delta=delta,
            actor_id=actor_id,
            reference_id=reference_id,
            reverses_id=reverses_id,
            note=note,
        ))
        logger.info(
            f"Trust #{action.sequence}: {action.kind.value} {action.delta:+d} "
            f"for user {user_id} (ref={reference_id})"
        )
        return action

    async def apply_policy_action(
        self,
        user_id: str,
        kind: TrustActionKind,
        reference_id: str | None = None,
        actor_id: str | None = None,
    ) -> TrustAction:
        """Append a fact whose delta comes from the configured point table."""
        return await self.apply_action(
            user_id=user_id,
            kind=kind,
            delta=self._policy.points_for(kind),
            reference_id=reference_id,
            actor_id=actor_id,
        )

    # =========================================================================
    # VOTES
    # =========================================================================

    async def apply_vote_change(
        self,
        listing: Listing,
        voter_id: str,
        previous: bool | None,
        new: bool,
    ) -> VoteLedgerEffect:
        """
        Net the ledger from ``previous`` to ``new`` for one (listing, voter).

        The prior vote's effect is reversed by compensating entries before
        the new vote's effect is applied, so the pair's net contribution is
        always that of the latest vote alone. Callers serialize on the
        (listing, voter) pair and run this inside their store transaction.
        """
        effect = VoteLedgerEffect()
        if previous == new:
            return effect
        if previous is not None:
            effect.actions += await self._vote_entries(listing, voter_id, previous, sign=-1)
        effect.actions += await self._vote_entries(listing, voter_id, new, sign=1)
        return effect

    async def _vote_entries(
        self,
        listing: Listing,
        voter_id: str,
        value: bool,
        sign: int,
    ) -> list[TrustAction]:
        note = None if sign > 0 else "vote changed"
        entries = []

        voter_kind = TrustActionKind.UPVOTE if value else TrustActionKind.DOWNVOTE
        voter_delta = sign * self._policy.points_for(voter_kind)
        if voter_delta:
            entries.append(await self.apply_action(
                user_id=voter_id,
                kind=voter_kind,
                delta=voter_delta,
                reference_id=listing.id,
                actor_id=voter_id,
                note=note,
            ))

        # Voting on your own listing does not move your own score
        if listing.author_id != voter_id:
            received_kind = (
                TrustActionKind.LISTING_RECEIVED_UPVOTE if value
                else TrustActionKind.LISTING_RECEIVED_DOWNVOTE
            )
            received_delta = sign * self._policy.points_for(received_kind)
            if received_delta:
                entries.append(await self.apply_action(
                    user_id=listing.author_id,
                    kind=received_kind,
                    delta=received_delta,
                    reference_id=listing.id,
                    actor_id=voter_id,
                    note=note,
                ))
        return entries

    # =========================================================================
    # ADMINISTRATION
    # =========================================================================

    async def admin_adjust(
        self,
        user_id: str,
        delta: int,
        admin: Actor,
        note: str | None = None,
    ) -> TrustAction:
        """Manual adjustment by an ADMIN or above; the sign picks the kind."""
        if not user_id:
            raise ValidationError("user_id is required")
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValidationError("delta must be a non-zero integer")
        self._permissions.require(
            self._permissions.can_perform(admin.role, Role.ADMIN),
            "adjust trust",
        )

        kind = (
            TrustActionKind.ADMIN_ADJUSTMENT_POSITIVE if delta > 0
            else TrustActionKind.ADMIN_ADJUSTMENT_NEGATIVE
        )
        return await self.apply_action(
            user_id=user_id,
            kind=kind,
            delta=delta,
            actor_id=admin.user_id,
            note=note,
        )

    async def reverse_action(
        self,
        action_id: str,
        admin: Actor,
        note: str | None = None,
    ) -> TrustAction:
        """
        Cancel an entry with a compensating entry of the opposite sign.

        Each entry can be reversed at most once; a reversal cannot itself be
        reversed (issue a new adjustment instead).
        """
        if not action_id:
            raise ValidationError("action_id is required")
        self._permissions.require(
            self._permissions.can_perform(admin.role, Role.ADMIN),
            "reverse trust actions",
        )

        async with self._locks.hold(f"trust-reversal:{action_id}"):
            async with self._store.transaction():
                original = await self._store.load_trust_action(action_id)
                if original is None:
                    raise NotFound(f"Trust action {action_id} not found")
                if original.reverses_id is not None:
                    raise ConflictError("A reversal cannot be reversed")
                if original.delta == 0:
                    raise ValidationError("Trust action has no effect to reverse")
                if await self._store.find_reversal(action_id) is not None:
                    raise ConflictError(f"Trust action {action_id} is already reversed")

                compensation = -original.delta
                kind = (
                    TrustActionKind.ADMIN_ADJUSTMENT_POSITIVE if compensation > 0
                    else TrustActionKind.ADMIN_ADJUSTMENT_NEGATIVE
                )
                return await self.apply_action(
                    user_id=original.user_id,
                    kind=kind,
                    delta=compensation,
                    reference_id=original.id,
                    actor_id=admin.user_id,
                    note=note or f"reversal of {original.kind.value}",
                    reverses_id=original.id,
                )

    # =========================================================================
    # READS
    # =========================================================================

    async def score_for(self, user_id: str) -> int:
        """Sum of every entry for the user, recomputed from the ledger."""
        if not user_id:
            raise ValidationError("user_id is required")
        return await self._store.sum_trust_actions(user_id)

    async def history_for(self, user_id: str) -> list[TrustAction]:
        if not user_id:
            raise ValidationError("user_id is required")
        return await self._store.list_trust_actions(user_id)

    def levels(self) -> list[TrustLevel]:
        return list(self._levels)

    def level_for(self, score: int) -> TrustLevel:
        """Highest level whose threshold the score meets (lowest level below all)."""
        current = self._levels[0]
        for level in self._levels:
            if score >= level.min_score:
                current = level
        return current

    async def standing_for(self, user_id: str) -> TrustStanding:
        score = await self.score_for(user_id)
        level = self.level_for(score)
        higher = [lv for lv in self._levels if lv.min_score > score]
        return TrustStanding(
            user_id=user_id,
            score=score,
            level=level,
            next_level=higher[0] if higher else None,
        )
