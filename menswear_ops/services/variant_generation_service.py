from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from menswear_ops.models import ProductCategory, SizeDefinition

THREE_PIECE = '3-piece'
THREE_PIECE_SURCHARGE = Decimal('50')
DEFAULT_THRESHOLDS = {
    ProductCategory.SUITS: 5,
    ProductCategory.SHIRTS: 3,
    ProductCategory.ACCESSORIES: 5,
}


@dataclass(frozen=True)
class VariantSpec:
    sku: str
    price: Decimal
    size_id: int | None
    color_id: int | None
    piece_type: str | None
    low_stock_threshold: int
    stock_quantity: int = 0


def suit_sku(*, color_id: int, size_code: str, piece_type: str) -> str:
    return f'SUIT-{color_id}-{size_code}-{piece_type.upper()}'


def shirt_sku(*, fit_type: str, color_id: int, size_code: str) -> str:
    return f'SHIRT-{fit_type.upper()}-{color_id}-{size_code}'


def accessory_sku(*, sku_prefix: str, color_id: int) -> str:
    return f'{sku_prefix}-{color_id}'


def _require(values: dict[str, object]) -> None:
    missing = [name for name, value in values.items() if value in (None, '', [], ())]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")


def generate_suit_variants(
    *,
    sizes: Iterable[SizeDefinition],
    color_ids: list[int],
    piece_types: list[str],
    base_price: Decimal,
) -> list[VariantSpec]:
    _require({'color_ids': color_ids, 'piece_types': piece_types, 'base_price': base_price})
    size_rows = list(sizes)
    specs: list[VariantSpec] = []
    for color_id in color_ids:
        for piece_type in piece_types:
            price = base_price + THREE_PIECE_SURCHARGE if piece_type == THREE_PIECE else base_price
            for size in size_rows:
                specs.append(
                    VariantSpec(
                        sku=suit_sku(color_id=color_id, size_code=size.size_code, piece_type=piece_type),
                        price=price,
                        size_id=size.id,
                        color_id=color_id,
                        piece_type=piece_type,
                        low_stock_threshold=DEFAULT_THRESHOLDS[ProductCategory.SUITS],
                    )
                )
    return specs


def generate_shirt_variants(
    *,
    sizes: Iterable[SizeDefinition],
    color_ids: list[int],
    fit_type: str,
    base_price: Decimal,
) -> list[VariantSpec]:
    _require({'color_ids': color_ids, 'fit_type': fit_type, 'base_price': base_price})
    size_rows = list(sizes)
    return [
        VariantSpec(
            sku=shirt_sku(fit_type=fit_type, color_id=color_id, size_code=size.size_code),
            price=base_price,
            size_id=size.id,
            color_id=color_id,
            piece_type=fit_type,
            low_stock_threshold=DEFAULT_THRESHOLDS[ProductCategory.SHIRTS],
        )
        for color_id in color_ids
        for size in size_rows
    ]


def generate_accessory_variants(*, color_ids: list[int], base_price: Decimal, sku_prefix: str) -> list[VariantSpec]:
    _require({'color_ids': color_ids, 'base_price': base_price, 'sku_prefix': sku_prefix})
    return [
        VariantSpec(
            sku=accessory_sku(sku_prefix=sku_prefix, color_id=color_id),
            price=base_price,
            size_id=None,
            color_id=color_id,
            piece_type=None,
            low_stock_threshold=DEFAULT_THRESHOLDS[ProductCategory.ACCESSORIES],
        )
        for color_id in color_ids
    ]
