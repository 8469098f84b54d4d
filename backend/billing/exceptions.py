"""Error hierarchy shared by the subscription lifecycle services."""


class LifecycleError(RuntimeError):
    """Base error for subscription and tenant lifecycle operations."""


class EntityNotFound(LifecycleError):
    """Raised when a referenced tenant, subscription or request does not exist."""


class InvalidTransition(LifecycleError):
    """
    Raised when an entity is no longer in the state an operation expects.

    Under concurrent invocation this is the normal outcome for the loser of a
    race; callers report it as a no-op rather than a failure.
    """


class DependencyFailure(LifecycleError):
    """Raised when the persistence layer fails inside a lifecycle operation."""


class LifecycleConflict(LifecycleError):
    """Raised when a uniqueness rule (one pending request, unique name) would be broken."""


class LifecycleValidationError(LifecycleError):
    """Raised for malformed input such as an unknown billing period or a short name."""
