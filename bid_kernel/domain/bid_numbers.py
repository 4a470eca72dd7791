"""Human-readable bid numbers: ``{PREFIX}-{year}-{n}``.

The numeric suffix is zero-padded to at least ``min_digits`` and widens
naturally past that (BID-2025-0001, BID-2025-9999, BID-2025-10000).
"""

from __future__ import annotations

import re
from typing import Iterable

DEFAULT_PREFIX = "BID"
DEFAULT_MIN_DIGITS = 4


def format_bid_number(
    value: int,
    year: int,
    prefix: str = DEFAULT_PREFIX,
    min_digits: int = DEFAULT_MIN_DIGITS,
) -> str:
    if value <= 0:
        raise ValueError(f"Sequence value must be positive, got {value}")
    return f"{prefix}-{year}-{value:0{min_digits}d}"


def year_pattern(prefix: str, year: int) -> re.Pattern[str]:
    """Regex matching bid numbers of the given prefix and year."""
    return re.compile(rf"^{re.escape(prefix)}-{year}-(\d+)$")


def next_value_from_existing(
    bid_numbers: Iterable[str], year: int, prefix: str = DEFAULT_PREFIX
) -> int:
    """Maximum numeric suffix among this year's numbers, plus one.

    Only used by the degraded fallback path; not safe under concurrency.
    """
    pattern = year_pattern(prefix, year)
    highest = 0
    for bid_number in bid_numbers:
        match = pattern.match(bid_number)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1
