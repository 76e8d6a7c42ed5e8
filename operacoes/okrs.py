from __future__ import annotations

from decimal import Decimal

from .models import OKRKeyResult


def update_key_result_value(key_result: OKRKeyResult, value) -> OKRKeyResult:
    key_result.current_value = Decimal(str(value))
    key_result.save(update_fields=["current_value", "updated_at"])
    return key_result
