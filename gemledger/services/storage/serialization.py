"""
JSON codec for store blobs.

Floats are decoded as Decimal so amounts never pick up binary rounding
on their way through the ledger, and encoded back as plain JSON numbers
so the blobs stay readable by every other module of the application.
A Decimal that no float can hold exactly (more than ~15 significant
digits) is written as a numeric string instead; every amount reader
accepts numeric strings.
"""

import json
from decimal import Decimal
from enum import Enum
from typing import Any


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        as_float = float(value)
        if Decimal(repr(as_float)) == value:
            return as_float
        return str(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def loads(blob: str) -> Any:
    """Decode a blob. Raises ValueError (json.JSONDecodeError) on bad input."""
    return json.loads(blob, parse_float=Decimal)


def dumps(data: Any) -> str:
    return json.dumps(data, default=_default, ensure_ascii=False)
