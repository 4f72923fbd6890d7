"""
Exception hierarchy for the orchestrator.
Store implementations translate driver errors into these so callers never
depend on a particular database library.
"""


class GeoworkError(Exception):
    """Base class for all orchestrator errors."""


class StoreError(GeoworkError):
    """A read or write against the document store failed."""


class BatchWriteError(StoreError):
    """An atomic batch could not be committed; none of its writes were applied."""


class ReferenceDataMissing(GeoworkError):
    """An employee, job site or company record needed to build a session is absent."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class IllegalTransition(GeoworkError):
    """A session status change that the state machine does not allow."""

    def __init__(self, current: str, target: str):
        super().__init__(f"illegal session transition {current} -> {target}")
        self.current = current
        self.target = target


class NotificationDispatchError(GeoworkError):
    """The push transport rejected or failed to deliver a message."""
