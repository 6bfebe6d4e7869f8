"""Tests for the span-size cap."""
import pytest

from voucher_locator.engine.safety import SafetyGuard
from voucher_locator.errors import ErrorKind, SafetyCapExceeded
from voucher_locator.schemas import ResolvedSpan


def test_span_at_cap_passes() -> None:
    SafetyGuard().check(ResolvedSpan(first_index=1, last_index=5), max_records=5)


def test_empty_span_passes() -> None:
    SafetyGuard().check(ResolvedSpan.empty(), max_records=1)


def test_span_over_cap_raises() -> None:
    with pytest.raises(SafetyCapExceeded) as info:
        SafetyGuard().check(ResolvedSpan(first_index=3, last_index=8), max_records=5)

    err = info.value
    assert err.kind is ErrorKind.SAFETY_CAP_EXCEEDED
    assert err.details == {"span_size": 6, "max_records": 5}
    assert "6" in err.message and "5" in err.message
    assert "maxVouchers" in err.instructions
