"""
Tests for the Role Hierarchy and Permission Evaluator.

These tests verify:
1. ORDER: roles form the total order USER < AUTHOR < ADMIN < SUPER_ADMIN
2. ROLE GATES: can_perform is monotone in the actor's role
3. OWNERSHIP: owners act on their own content, escalation otherwise
4. COMMENTS: editing needs SUPER_ADMIN, deleting needs ADMIN
"""

import pytest

from community_trust.models import ROLE_RANKS, Actor, Role
from community_trust.services import (
    AccessReason,
    PermissionDenied,
    PermissionEvaluator,
    RoleHierarchy,
)


@pytest.fixture
def evaluator() -> PermissionEvaluator:
    return PermissionEvaluator(RoleHierarchy())


# =============================================================================
# TEST: ROLE ORDER
# =============================================================================


class TestRoleHierarchy:
    """Tests for the fixed role order."""

    def test_ordered_roles(self):
        assert RoleHierarchy.ordered() == [
            Role.USER,
            Role.AUTHOR,
            Role.ADMIN,
            Role.SUPER_ADMIN,
        ]

    def test_every_role_has_a_distinct_rank(self):
        assert set(ROLE_RANKS) == set(Role)
        assert len(set(ROLE_RANKS.values())) == len(Role)

    @pytest.mark.parametrize("role", list(Role))
    def test_role_subsumes_itself(self, role: Role):
        assert RoleHierarchy.subsumes(role, role)

    def test_lower_role_does_not_subsume_higher(self):
        assert not RoleHierarchy.subsumes(Role.AUTHOR, Role.ADMIN)
        assert RoleHierarchy.subsumes(Role.SUPER_ADMIN, Role.USER)


# =============================================================================
# TEST: ROLE GATES
# =============================================================================


class TestCanPerform:
    """Tests for the plain role gate."""

    def test_public_action_allows_any_role(self, evaluator: PermissionEvaluator):
        assert evaluator.can_perform(Role.USER, None)

    def test_missing_role_is_never_allowed(self, evaluator: PermissionEvaluator):
        decision = evaluator.can_perform(None, None)
        assert not decision
        assert decision.reason == AccessReason.NO_ROLE

    def test_insufficient_role(self, evaluator: PermissionEvaluator):
        decision = evaluator.can_perform(Role.AUTHOR, Role.ADMIN)
        assert not decision
        assert decision.reason == AccessReason.INSUFFICIENT_ROLE

    def test_monotone_in_actor_role(self, evaluator: PermissionEvaluator):
        """If a role is allowed, every higher role is allowed too."""
        ordered = RoleHierarchy.ordered()
        for required in ordered:
            for i, role in enumerate(ordered):
                if evaluator.can_perform(role, required):
                    assert all(evaluator.can_perform(r, required) for r in ordered[i:])


# =============================================================================
# TEST: OWNERSHIP
# =============================================================================


class TestCanEdit:
    """Tests for ownership combined with role escalation."""

    def test_owner_may_edit(self, evaluator: PermissionEvaluator):
        decision = evaluator.can_edit(Role.USER, "u1", "u1", Role.ADMIN)
        assert decision
        assert decision.reason == AccessReason.OWNER

    def test_non_owner_below_escalation_role_is_denied(self, evaluator: PermissionEvaluator):
        assert not evaluator.can_edit(Role.AUTHOR, "u2", "u1", Role.ADMIN)

    def test_non_owner_with_escalation_role_is_allowed(self, evaluator: PermissionEvaluator):
        decision = evaluator.can_edit(Role.ADMIN, "u2", "u1", Role.ADMIN)
        assert decision
        assert decision.reason == AccessReason.ROLE_SATISFIED

    def test_missing_actor_id_denies_even_super_admin(self, evaluator: PermissionEvaluator):
        decision = evaluator.can_edit(Role.SUPER_ADMIN, None, "u1", Role.ADMIN)
        assert not decision
        assert decision.reason == AccessReason.MISSING_ACTOR

    def test_missing_owner_id_denies_even_super_admin(self, evaluator: PermissionEvaluator):
        decision = evaluator.can_edit(Role.SUPER_ADMIN, "u1", None, Role.ADMIN)
        assert not decision
        assert decision.reason == AccessReason.MISSING_OWNER

    def test_owns_has_no_role_escalation(self, evaluator: PermissionEvaluator):
        decision = evaluator.owns("admin", "u1")
        assert not decision
        assert decision.reason == AccessReason.NOT_OWNER


# =============================================================================
# TEST: COMMENTS
# =============================================================================


class TestCommentPermissions:
    """Editing someone else's comment needs more than deleting it."""

    def test_admin_can_delete_but_not_edit(self, evaluator: PermissionEvaluator):
        admin = Actor(user_id="admin", role=Role.ADMIN)
        assert evaluator.can_delete_comment(admin, "someone")
        assert not evaluator.can_edit_comment(admin, "someone")

    def test_super_admin_can_edit(self, evaluator: PermissionEvaluator):
        super_admin = Actor(user_id="root", role=Role.SUPER_ADMIN)
        assert evaluator.can_edit_comment(super_admin, "someone")

    def test_author_can_edit_and_delete_own(self, evaluator: PermissionEvaluator):
        user = Actor(user_id="u1", role=Role.USER)
        assert evaluator.can_edit_comment(user, "u1")
        assert evaluator.can_delete_comment(user, "u1")


class TestRequire:
    def test_require_raises_with_reason(self, evaluator: PermissionEvaluator):
        with pytest.raises(PermissionDenied) as exc_info:
            evaluator.require(evaluator.can_perform(Role.USER, Role.ADMIN), "approve listings")
        assert exc_info.value.reason == AccessReason.INSUFFICIENT_ROLE.value

    def test_require_passes_allowed_decision(self, evaluator: PermissionEvaluator):
        evaluator.require(evaluator.can_perform(Role.ADMIN, Role.ADMIN), "approve listings")
