"""
Locator error taxonomy.

Every failure the engine knows about carries an explicit ErrorKind tag so
callers branch on the kind, never on message text.

    TRANSIENT_RECORD     one index failed to resolve; recovered locally
    PROBE_FAILURE        latest-index lookup failed; recovered by fallback scan
    SAFETY_CAP_EXCEEDED  resolved span larger than max_records; fatal
    UNEXPECTED_FAILURE   anything else during locate/fetch/aggregate; fatal
    CANCELLED            caller aborted the run; fatal
    INVALID_INPUT        query rejected before any gateway call; fatal
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    TRANSIENT_RECORD = "transient_record"
    PROBE_FAILURE = "probe_failure"
    SAFETY_CAP_EXCEEDED = "safety_cap_exceeded"
    UNEXPECTED_FAILURE = "unexpected_failure"
    CANCELLED = "cancelled"
    INVALID_INPUT = "invalid_input"


# Deterministic follow-up guidance attached to every error result.
INSTRUCTIONS: dict[ErrorKind, str] = {
    ErrorKind.TRANSIENT_RECORD: (
        "A single voucher could not be read. It was skipped; retry the query "
        "later if that voucher is required."
    ),
    ErrorKind.PROBE_FAILURE: (
        "The latest voucher number could not be queried directly. Results were "
        "computed from a fallback scan and may be incomplete."
    ),
    ErrorKind.SAFETY_CAP_EXCEEDED: (
        "Narrow the date range or raise maxVouchers, then run the query again."
    ),
    ErrorKind.UNEXPECTED_FAILURE: (
        "Tell the user an unexpected error occurred and show the message. "
        "Do not retry automatically without corrections."
    ),
    ErrorKind.CANCELLED: "The query was cancelled before completion. Run it again if needed.",
    ErrorKind.INVALID_INPUT: (
        "Fix the reported parameters (dates as YYYYMMDD, fechaDesde <= fechaHasta) "
        "and call the tool again."
    ),
}


class LocatorError(Exception):
    """Base class for every tagged locator failure."""

    kind: ErrorKind = ErrorKind.UNEXPECTED_FAILURE

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}

    @property
    def instructions(self) -> str:
        return INSTRUCTIONS[self.kind]


class GatewayError(LocatorError):
    """Transport or remote-service failure raised by a RecordGateway."""

    kind = ErrorKind.TRANSIENT_RECORD


class TransientRecordError(LocatorError):
    kind = ErrorKind.TRANSIENT_RECORD

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"Voucher {index} could not be read: {reason}", {"index": index})
        self.index = index
        self.reason = reason


class ProbeFailure(LocatorError):
    kind = ErrorKind.PROBE_FAILURE


class SafetyCapExceeded(LocatorError):
    kind = ErrorKind.SAFETY_CAP_EXCEEDED

    def __init__(self, span_size: int, max_records: int) -> None:
        super().__init__(
            f"The range contains {span_size} vouchers, but the limit is {max_records}. "
            f"Narrow the date range or raise maxVouchers.",
            {"span_size": span_size, "max_records": max_records},
        )
        self.span_size = span_size
        self.max_records = max_records


class UnexpectedFailure(LocatorError):
    kind = ErrorKind.UNEXPECTED_FAILURE

    def __init__(self, original: BaseException) -> None:
        super().__init__(
            str(original) or original.__class__.__name__,
            {"type": original.__class__.__name__, "repr": repr(original)},
        )
        self.original = original


class OperationCancelled(LocatorError):
    kind = ErrorKind.CANCELLED

    def __init__(self, stage: str) -> None:
        super().__init__(f"Query cancelled during {stage}", {"stage": stage})
        self.stage = stage


class InvalidQuery(LocatorError):
    kind = ErrorKind.INVALID_INPUT
