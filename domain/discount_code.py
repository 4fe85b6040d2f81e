"""
Domain: discount code format (single source for generation and parsing).

Format:
    INTEL <pp> <id8> <time36>   truncated to 16 characters

- "INTEL" is a constant prefix.
- <pp> is the awarded percentage as two digits (05, 10, ... 50). A fixed
  width keeps decoding unambiguous when the suffix starts with a digit.
- <id8> is the first 8 hex characters of the award id, upper-cased.
- <time36> is the award creation time in epoch milliseconds, base 36,
  upper-cased.

Codes are opaque identifiers for lookups. `decode_percentage` exists only for
display when no stored record is available.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from .time import to_epoch_ms

CODE_PREFIX = "INTEL"
CODE_LENGTH = 16

_CODE_PATTERN = re.compile(rf"^{CODE_PREFIX}(\d{{2}})[A-Z0-9]+$")
_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be >= 0")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def normalize_code(code: str) -> str:
    return code.strip().upper()


def encode_discount_code(percentage: int, award_id: UUID, created_at: datetime) -> str:
    """
    Derive the discount code for an award.

    Deterministic: the same (percentage, award_id, created_at) always yields
    the same code.
    """

    if not 1 <= percentage <= 99:
        raise ValueError("percentage must be between 1 and 99 to be encoded")

    short_id = award_id.hex[:8].upper()
    time_code = _to_base36(to_epoch_ms(created_at))
    return f"{CODE_PREFIX}{percentage:02d}{short_id}{time_code}"[:CODE_LENGTH]


def is_well_formed(code: str) -> bool:
    return _CODE_PATTERN.match(normalize_code(code)) is not None


def decode_percentage(code: str) -> Optional[int]:
    """Return the percentage embedded in `code`, or None if the code is malformed."""

    match = _CODE_PATTERN.match(normalize_code(code))
    if match is None:
        return None
    return int(match.group(1))


__all__ = [
    "CODE_LENGTH",
    "CODE_PREFIX",
    "decode_percentage",
    "encode_discount_code",
    "is_well_formed",
    "normalize_code",
]
