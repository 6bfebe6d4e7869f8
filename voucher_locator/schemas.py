"""
Core Pydantic schemas for the voucher range locator.

Every stage of the engine (probe, strategy, locator, fetcher, aggregator)
shares these models so a query can be traced from the tool arguments down
to the vouchers it returns.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from voucher_locator.utils.helpers import is_compact_date


# --- Enumerations ------------------------------------------------------------

class SearchStrategy(str, Enum):
    HISTORICAL = "historical"    # whole range lies before the newest voucher
    RECENT = "recent"            # range reaches the newest voucher (or beyond)


# --- Ledger Models ------------------------------------------------------------

class PartitionKey(BaseModel):
    """Point of sale + voucher type: the namespace voucher numbers are assigned in."""

    model_config = ConfigDict(frozen=True)

    point_of_sale: int = Field(ge=1)
    voucher_type: int = Field(ge=1)

    @property
    def label(self) -> str:
        return f"{self.point_of_sale:04d}-{self.voucher_type:03d}"


class VoucherRecord(BaseModel):
    """A voucher as returned by the ledger. Immutable once issued."""

    model_config = ConfigDict(frozen=True)

    voucher_number: int
    voucher_date: Optional[str] = None     # YYYYMMDD
    total_amount: float = 0.0
    auth_code: str = ""                    # CAE
    auth_expiry: str = ""                  # CAE expiry, YYYYMMDD
    doc_type: Optional[int] = None
    doc_number: Optional[int] = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, index: int, payload: dict[str, Any]) -> "VoucherRecord":
        """Build a record from the ledger's native field names."""
        date = payload.get("CbteFch")
        return cls(
            voucher_number=index,
            voucher_date=str(date) if date not in (None, "") else None,
            total_amount=float(payload.get("ImpTotal") or 0),
            auth_code=str(payload.get("CAE") or ""),
            auth_expiry=str(payload.get("CAEFchVto") or ""),
            doc_type=payload.get("DocTipo"),
            doc_number=payload.get("DocNro"),
            raw=dict(payload),
        )


class DateRange(BaseModel):
    """Inclusive [date_from, date_to] in YYYYMMDD form."""

    model_config = ConfigDict(frozen=True)

    date_from: str
    date_to: str

    @field_validator("date_from", "date_to")
    @classmethod
    def _compact_date(cls, value: str) -> str:
        if not is_compact_date(value):
            raise ValueError(f"expected a YYYYMMDD date, got {value!r}")
        return value

    def contains(self, date: Optional[str]) -> bool:
        # Fixed-width digit strings compare in calendar order.
        return bool(date) and self.date_from <= date <= self.date_to


class ResolvedSpan(BaseModel):
    """Index interval believed to contain every in-range voucher."""

    first_index: int
    last_index: int

    @classmethod
    def empty(cls) -> "ResolvedSpan":
        return cls(first_index=0, last_index=-1)

    @property
    def is_empty(self) -> bool:
        return self.first_index < 1 or self.first_index > self.last_index

    @property
    def size(self) -> int:
        return 0 if self.is_empty else self.last_index - self.first_index + 1

    def indices(self) -> range:
        if self.is_empty:
            return range(0)
        return range(self.first_index, self.last_index + 1)


class FetchOutcome(BaseModel):
    """Result of one per-index fetch in a batch: a record or an error, never both."""

    index: int
    record: Optional[VoucherRecord] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None and self.error is None


# --- Query Input --------------------------------------------------------------

class DateRangeQuery(BaseModel):
    """Validated input of a single date-range retrieval."""

    partition: PartitionKey
    date_from: str
    date_to: str
    batch_size: int = Field(default=20, ge=1, le=50)
    max_records: int = Field(default=500, ge=1, le=1000)
    include_details: bool = False

    @field_validator("date_from", "date_to")
    @classmethod
    def _compact_date(cls, value: str) -> str:
        if not is_compact_date(value):
            raise ValueError(f"expected a YYYYMMDD date, got {value!r}")
        return value

    @model_validator(mode="after")
    def _ordered(self) -> "DateRangeQuery":
        if self.date_from > self.date_to:
            raise ValueError(
                f"date_from ({self.date_from}) must not be after date_to ({self.date_to})"
            )
        return self

    @property
    def date_range(self) -> DateRange:
        return DateRange(date_from=self.date_from, date_to=self.date_to)

    @classmethod
    def from_tool_arguments(
        cls,
        args: dict[str, Any],
        batch_size: int = 20,
        max_records: int = 500,
    ) -> "DateRangeQuery":
        """Map MCP tool arguments (ledger field names) onto the query model."""
        return cls(
            partition=PartitionKey(
                point_of_sale=args.get("PtoVta"),
                voucher_type=args.get("CbteTipo"),
            ),
            date_from=args.get("fechaDesde"),
            date_to=args.get("fechaHasta"),
            batch_size=args.get("batchSize", batch_size),
            max_records=args.get("maxVouchers", max_records),
            include_details=args.get("includeDetails", False),
        )


# --- Query Output -------------------------------------------------------------

class VoucherSummary(BaseModel):
    """Projection of a matched voucher. Detail fields are None unless requested."""

    voucher_number: int
    voucher_date: str
    total_amount: float
    auth_code: str
    auth_expiry: str
    doc_type: Optional[int] = None
    doc_number: Optional[int] = None
    details: Optional[dict[str, Any]] = None

    @classmethod
    def from_record(cls, record: VoucherRecord, include_details: bool) -> "VoucherSummary":
        summary = cls(
            voucher_number=record.voucher_number,
            voucher_date=record.voucher_date or "",
            total_amount=record.total_amount,
            auth_code=record.auth_code,
            auth_expiry=record.auth_expiry,
        )
        if include_details:
            summary.doc_type = record.doc_type
            summary.doc_number = record.doc_number
            summary.details = record.raw
        return summary


class IndexRange(BaseModel):
    first: int = 0
    last: int = 0


class RequestedRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_from: str = Field(serialization_alias="from")
    date_to: str = Field(serialization_alias="to")


class RangeSummary(BaseModel):
    count: int = 0
    total_amount: float = 0.0
    requested_range: RequestedRange
    matched_index_range: IndexRange = Field(default_factory=IndexRange)


class PerformanceReport(BaseModel):
    probe_queries: int = 0
    binary_search_queries: int = 0
    batch_queries: int = 0
    elapsed_ms: float = 0.0

    @computed_field
    @property
    def total_queries(self) -> int:
        return self.probe_queries + self.binary_search_queries + self.batch_queries


class QueryResult(BaseModel):
    """Successful outcome of a date-range query, including the empty path."""

    summary: RangeSummary
    vouchers: list[VoucherSummary] = Field(default_factory=list)
    performance: PerformanceReport
    strategy: Optional[SearchStrategy] = None
    resolved_span: Optional[IndexRange] = None
    failed_indices: list[int] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ErrorResult(BaseModel):
    """Fatal outcome. Carries partial performance counters and no vouchers."""

    error: str
    error_kind: str
    details: dict[str, Any] = Field(default_factory=dict)
    instructions: str = ""
    performance: PerformanceReport

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
