"""
Permission Evaluator: role gates combined with ownership checks.

Every check returns an ``AccessDecision``; a denial is a normal outcome,
not an exception. The evaluator holds no state and takes no locks, so it
is safe to call from any task in any order.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from ..models import Actor, Role
from .errors import PermissionDenied
from .roles import RoleHierarchy

logger = logging.getLogger(__name__)


class AccessReason(str, Enum):
    """Why an access decision came out the way it did."""
    ROLE_SATISFIED = "role_satisfied"
    OWNER = "owner"
    NO_ROLE = "no_role"
    INSUFFICIENT_ROLE = "insufficient_role"
    MISSING_ACTOR = "missing_actor"
    MISSING_OWNER = "missing_owner"
    NOT_OWNER = "not_owner"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: AccessReason

    def __bool__(self) -> bool:
        return self.allowed


class PermissionEvaluator:
    """Authorizes content actions for an actor."""

    def __init__(self, hierarchy: RoleHierarchy | None = None):
        self._hierarchy = hierarchy or RoleHierarchy()

    def can_perform(self, actor_role: Role | None, required_role: Role | None) -> AccessDecision:
        """Role gate. An absent actor role is never elevated, even for public actions."""
        if actor_role is None:
            return AccessDecision(False, AccessReason.NO_ROLE)
        if self._hierarchy.subsumes(actor_role, required_role):
            return AccessDecision(True, AccessReason.ROLE_SATISFIED)
        return AccessDecision(False, AccessReason.INSUFFICIENT_ROLE)

    def can_edit(
        self,
        actor_role: Role | None,
        actor_id: str | None,
        resource_owner_id: str | None,
        escalation_role: Role,
    ) -> AccessDecision:
        """
        Owner, or anyone holding ``escalation_role``.

        Ownership must be provable: a missing actor id or owner id denies
        regardless of role.
        """
        ownership = self.owns(actor_id, resource_owner_id)
        if ownership or ownership.reason != AccessReason.NOT_OWNER:
            return ownership
        return self.can_perform(actor_role, escalation_role)

    def owns(self, actor_id: str | None, resource_owner_id: str | None) -> AccessDecision:
        """Ownership alone, with no role escalation."""
        if not actor_id:
            return AccessDecision(False, AccessReason.MISSING_ACTOR)
        if not resource_owner_id:
            return AccessDecision(False, AccessReason.MISSING_OWNER)
        if actor_id == resource_owner_id:
            return AccessDecision(True, AccessReason.OWNER)
        return AccessDecision(False, AccessReason.NOT_OWNER)

    def can_edit_comment(self, actor: Actor, comment_author_id: str | None) -> AccessDecision:
        # Rewriting someone else's words needs more authority than removing them
        return self.can_edit(actor.role, actor.user_id, comment_author_id, Role.SUPER_ADMIN)

    def can_delete_comment(self, actor: Actor, comment_author_id: str | None) -> AccessDecision:
        return self.can_edit(actor.role, actor.user_id, comment_author_id, Role.ADMIN)

    def require(self, decision: AccessDecision, action: str) -> None:
        """Raise ``PermissionDenied`` for a denial; no-op otherwise."""
        if decision:
            return
        logger.warning(f"Denied {action}: {decision.reason.value}")
        raise PermissionDenied(
            f"Not allowed to {action} ({decision.reason.value})",
            reason=decision.reason.value,
        )
