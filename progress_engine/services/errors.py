"""Error taxonomy shared by the engine's services.

InvalidTransitionError is always surfaced to the caller.  The other three
are recovered from by the batch jobs; only BatchFatalError escapes a run.
"""

from __future__ import annotations


class InvalidTransitionError(Exception):
    """Raised when an operation is not permitted from the current status."""

    def __init__(self, current: str, operation: str, target: str | None = None) -> None:
        self.current = current
        self.operation = operation
        self.target = target
        super().__init__(f"Cannot {operation} from status {current!r}")


class LookupFailureError(Exception):
    """A dependency failed for a single entity (progress, recipients, asset)."""

    def __init__(self, entity_id: str, reason: str) -> None:
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Lookup failed for {entity_id}: {reason}")


class PersistenceConflictError(Exception):
    """A conditional update found the record no longer in the expected status."""

    def __init__(self, record_id: str, expected_status: str) -> None:
        self.record_id = record_id
        self.expected_status = expected_status
        super().__init__(
            f"Record {record_id} is no longer in status {expected_status!r}"
        )


class BatchFatalError(Exception):
    """The batch could not start (e.g. the first scan page failed)."""


class RecordNotFoundError(LookupError):
    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")
