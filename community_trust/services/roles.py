"""Role hierarchy: a fixed total order over account roles."""

from ..models import ROLE_RANKS, Role


class RoleHierarchy:
    """Answers "does role A carry at least the authority of role B"."""

    @staticmethod
    def rank(role: Role) -> int:
        return ROLE_RANKS[role]

    @staticmethod
    def ordered() -> list[Role]:
        """All roles from least to most authority."""
        return sorted(ROLE_RANKS, key=ROLE_RANKS.__getitem__)

    @classmethod
    def subsumes(cls, have: Role, need: Role | None) -> bool:
        """True iff ``have`` ranks at or above ``need``; no ``need`` means public."""
        if need is None:
            return True
        return cls.rank(have) >= cls.rank(need)
