from __future__ import annotations

import re
from decimal import Decimal

_SIZE_PATTERN = re.compile(r'^(\d+(?:\.\d+)?)\s*([A-Za-z]*)$')
_LETTER_SIZES = ('XXS', 'XS', 'S', 'M', 'L', 'XL', 'XXL', 'XXXL')


def normalize_sort_text(value: str | None) -> str:
    return (value or '').strip().lower()


def size_sort_key(size_code: str | None) -> tuple[int, Decimal, str]:
    """Numeric sizes (38R, 15.5) first by number, then letter sizes S..XXXL, then anything else."""
    normalized = normalize_sort_text(size_code)
    match = _SIZE_PATTERN.match(normalized)
    if match:
        return (0, Decimal(match.group(1)), match.group(2))
    upper = normalized.upper()
    if upper in _LETTER_SIZES:
        return (1, Decimal(_LETTER_SIZES.index(upper)), upper)
    return (2, Decimal('0'), normalized)


def definition_sort_key(*, sort_order: int | None, size_code: str | None) -> tuple[int, int, Decimal, str]:
    return (sort_order or 0, *size_sort_key(size_code))
