"""
Engine exceptions.
"""


class EngineError(Exception):
    """Base class for engine failures."""


class RecomputeFailedError(EngineError):
    """
    A batch write was rejected by the store.

    The session has been rolled back; no partial state is guaranteed and the
    caller should retry the whole operation.
    """

    def __init__(self, operation: str, user_id: str, cause: Exception = None):
        self.operation = operation
        self.user_id = user_id
        self.cause = cause
        super().__init__(f"{operation} failed for user {user_id}: {cause}")


class RecomputeInProgressError(EngineError):
    """A recompute of the same component is already running for this user."""

    def __init__(self, component: str, user_id: str):
        self.component = component
        self.user_id = user_id
        super().__init__(f"{component} recompute already running for user {user_id}")


class BudgetClosedError(EngineError):
    """The budget month has been closed and can no longer change."""

    def __init__(self, budget_id: str):
        self.budget_id = budget_id
        super().__init__(f"Budget {budget_id} is closed")


class RecordNotFoundError(EngineError):
    """A rule, budget or transaction does not exist for this user."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")
