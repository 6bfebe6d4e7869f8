"""Span-size cap enforced before any bulk fetching."""
from __future__ import annotations

from loguru import logger

from voucher_locator.errors import SafetyCapExceeded
from voucher_locator.schemas import ResolvedSpan


class SafetyGuard:
    def check(self, span: ResolvedSpan, max_records: int) -> None:
        """Raise SafetyCapExceeded when the span holds more than max_records indices."""
        if span.size > max_records:
            logger.warning(f"[Safety] Span of {span.size} vouchers exceeds cap of {max_records}")
            raise SafetyCapExceeded(span.size, max_records)
