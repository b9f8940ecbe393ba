"""Per-request error taxonomy for the policy core.

None of these is fatal to the process. A denial from the permission
evaluator is a plain value; it only becomes ``PermissionDenied`` when a
service needs to abort an operation.
"""


class PolicyError(Exception):
    """Base exception for policy operations."""

    code = "policy_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class PermissionDenied(PolicyError):
    """Actor lacks the required role and is not the resource owner."""

    code = "permission_denied"

    def __init__(self, message: str = "", reason: str | None = None):
        super().__init__(message)
        self.reason = reason


class ConflictError(PolicyError):
    """Operation not allowed in the current state."""

    code = "conflict"


class NotFound(PolicyError):
    """Referenced listing, comment, notification or ledger entry does not exist."""

    code = "not_found"


class ValidationError(PolicyError):
    """Malformed input; raised before any side effect."""

    code = "validation_error"


class DependencyUnavailable(PolicyError):
    """A collaborator (store, delivery) failed. Not retried by the core."""

    code = "dependency_unavailable"
