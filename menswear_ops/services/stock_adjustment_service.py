from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class BulkOperation(str, Enum):
    SET = 'set'
    ADD = 'add'
    SUBTRACT = 'subtract'
    PERCENTAGE = 'percentage'


class StockStatus(str, Enum):
    IN_STOCK = 'in_stock'
    LOW_STOCK = 'low_stock'
    OUT_OF_STOCK = 'out_of_stock'


@dataclass(frozen=True)
class VariantStock:
    variant_id: int
    product_name: str
    sku: str
    category: str
    stock_quantity: int
    low_stock_threshold: int


@dataclass(frozen=True)
class StockPreviewLine:
    variant_id: int
    product_name: str
    sku: str
    current_quantity: int
    new_quantity: int

    @property
    def delta(self) -> int:
        return self.new_quantity - self.current_quantity


# Upper bound of the stock_quantity integer column.
MAX_STOCK_QUANTITY = 2_147_483_647

_LEADING_NUMBER_RE = re.compile(r'\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)')


def _parse_operand(operand: str | float | int | None) -> float | None:
    # Leading numeric prefix wins, so "12 units" reads as 12.
    if operand is None:
        return None
    match = _LEADING_NUMBER_RE.match(str(operand))
    if not match:
        return None
    value = float(match.group(1))
    if math.isinf(value):
        return None
    return value


def calculate_new_quantity(current_quantity: int, operation: BulkOperation | str, operand: str | float | int | None) -> int:
    """
    Apply one bulk operation to a single stock count.

    A non-numeric operand leaves the count untouched. The result is never negative.
    Floor is taken on the operand for set/add/subtract and on the final product for
    percentage, so fractional stock is never produced. Results above
    MAX_STOCK_QUANTITY are capped there.
    """
    value = _parse_operand(operand)
    if value is None:
        return current_quantity

    operation = BulkOperation(operation)
    if operation == BulkOperation.SET:
        result = math.floor(value)
    elif operation == BulkOperation.ADD:
        result = current_quantity + math.floor(value)
    elif operation == BulkOperation.SUBTRACT:
        result = current_quantity - math.floor(value)
    else:
        product = current_quantity * (1 + value / 100)
        if not math.isfinite(product):
            return 0 if product < 0 else MAX_STOCK_QUANTITY
        result = math.floor(product)
    return min(MAX_STOCK_QUANTITY, max(0, int(result)))


def stock_status(quantity: int, threshold: int) -> StockStatus:
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def filter_variants(variants: Iterable[VariantStock], *, search: str = '', category: str = 'all') -> list[VariantStock]:
    needle = search.strip().lower()
    category_needle = category.strip().lower()
    matched: list[VariantStock] = []
    for variant in variants:
        if needle and needle not in variant.product_name.lower() and needle not in variant.sku.lower():
            continue
        if category_needle not in ('', 'all') and category_needle not in variant.category.lower():
            continue
        matched.append(variant)
    return matched


def build_bulk_preview(
    variants: Iterable[VariantStock],
    *,
    selected_ids: Iterable[int],
    operation: BulkOperation | str,
    operand: str,
) -> list[StockPreviewLine]:
    operation = BulkOperation(operation)
    by_id = {variant.variant_id: variant for variant in variants}
    lines: list[StockPreviewLine] = []
    seen: set[int] = set()
    for variant_id in selected_ids:
        variant = by_id.get(variant_id)
        if variant is None or variant_id in seen:
            continue
        seen.add(variant_id)
        lines.append(
            StockPreviewLine(
                variant_id=variant.variant_id,
                product_name=variant.product_name,
                sku=variant.sku,
                current_quantity=variant.stock_quantity,
                new_quantity=calculate_new_quantity(variant.stock_quantity, operation, operand),
            )
        )
    return lines
