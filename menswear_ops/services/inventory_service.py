from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from menswear_ops.context import RequestContext
from menswear_ops.models import (
    InventoryMovement,
    InventoryProduct,
    InventoryVariant,
    MovementType,
    ProductCategory,
)
from menswear_ops.services.definitions_service import Definitions, load_definitions
from menswear_ops.services.repository import InventoryRepository, NotFoundError, utcnow
from menswear_ops.services.stock_adjustment_service import (
    BulkOperation,
    StockPreviewLine,
    StockStatus,
    VariantStock,
    stock_status,
)
from menswear_ops.services.variant_generation_service import (
    VariantSpec,
    generate_accessory_variants,
    generate_shirt_variants,
    generate_suit_variants,
)

logger = logging.getLogger(__name__)

ROLLED_BACK = 'Rolled back with the rest of the batch'
PRODUCT_FIELDS = (
    'name',
    'subcategory',
    'sku_prefix',
    'base_price',
    'description',
    'requires_size',
    'requires_color',
    'sizing_category',
)


@dataclass(frozen=True)
class ProductSummary:
    product: InventoryProduct
    variants: list[InventoryVariant]
    total_stock: int
    low_stock_variants: int


@dataclass(frozen=True)
class LowStockAlert:
    variant_id: int
    product_id: int
    product_name: str
    sku: str
    stock_quantity: int
    low_stock_threshold: int
    status: StockStatus


@dataclass(frozen=True)
class BulkLineResult:
    variant_id: int
    previous_quantity: int | None
    new_quantity: int
    ok: bool
    error: str | None = None


@dataclass
class BulkUpdateReport:
    atomic: bool
    results: list[BulkLineResult] = field(default_factory=list)

    @property
    def updated(self) -> int:
        return sum(1 for result in self.results if result.ok)

    @property
    def failed_variant_ids(self) -> list[int]:
        return [result.variant_id for result in self.results if not result.ok]

    @property
    def success(self) -> bool:
        return not self.failed_variant_ids


def _movement_type(diff: int) -> MovementType:
    if diff > 0:
        return MovementType.IN
    if diff < 0:
        return MovementType.OUT
    return MovementType.ADJUSTMENT


def _require_product(repo: InventoryRepository, product_id: int) -> InventoryProduct:
    product = repo.get_product(product_id)
    if product is None:
        raise NotFoundError(f'Product {product_id} not found')
    return product


def _require_variant(repo: InventoryRepository, variant_id: int) -> InventoryVariant:
    variant = repo.get_variant(variant_id)
    if variant is None or not variant.is_active:
        raise NotFoundError(f'Variant {variant_id} not found')
    return variant


def _parse_price(value: Decimal | str | float) -> Decimal:
    try:
        price = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError('Price must be a number') from exc
    if price < 0:
        raise ValueError('Price cannot be negative')
    return price.quantize(Decimal('0.01'))


def set_variant_stock(
    repo: InventoryRepository,
    *,
    variant_id: int,
    new_quantity: int,
    ctx: RequestContext,
    notes: str,
) -> InventoryMovement:
    """Write one stock count and its movement row. The caller owns commit/savepoint."""
    variant = _require_variant(repo, variant_id)
    new_quantity = max(0, int(new_quantity))
    previous = variant.stock_quantity
    variant.stock_quantity = new_quantity
    variant.updated_at = utcnow()
    repo.save(variant)
    diff = new_quantity - previous
    return repo.add(
        InventoryMovement(
            variant_id=variant.id,
            movement_type=_movement_type(diff),
            quantity=abs(diff),
            previous_quantity=previous,
            new_quantity=new_quantity,
            notes=notes,
            created_by=ctx.actor_id,
        )
    )


def update_variant_stock(
    repo: InventoryRepository,
    *,
    variant_id: int,
    raw_value: str | int,
    ctx: RequestContext,
    notes: str = 'Manual update via size matrix',
) -> InventoryVariant:
    raw = str(raw_value).strip()
    try:
        new_quantity = int(raw)
    except ValueError as exc:
        raise ValueError('Stock quantity must be a whole number') from exc
    if new_quantity < 0:
        raise ValueError('Stock quantity cannot be negative')

    set_variant_stock(repo, variant_id=variant_id, new_quantity=new_quantity, ctx=ctx, notes=notes)
    repo.commit()
    logger.info('Variant %s stock set to %s by %s', variant_id, new_quantity, ctx.actor_id)
    return _require_variant(repo, variant_id)


def variant_stock_rows(repo: InventoryRepository) -> list[VariantStock]:
    products = {product.id: product for product in repo.list_products()}
    rows: list[VariantStock] = []
    for variant in repo.list_variants(product_ids=list(products)):
        product = products[variant.product_id]
        rows.append(
            VariantStock(
                variant_id=variant.id,
                product_name=product.name,
                sku=variant.sku,
                category=product.category.value,
                stock_quantity=variant.stock_quantity,
                low_stock_threshold=variant.low_stock_threshold,
            )
        )
    return rows


def apply_bulk_update(
    repo: InventoryRepository,
    *,
    preview: list[StockPreviewLine],
    operation: BulkOperation | str,
    operand: str,
    ctx: RequestContext,
    atomic: bool = False,
) -> BulkUpdateReport:
    """
    Commit a previewed bulk change, one write per variant.

    By default every line runs in its own savepoint so a failing variant is reported
    without undoing the others. With `atomic=True` the first failure rolls back the
    whole batch and every line is reported as failed.
    """
    operation = BulkOperation(operation)
    notes = f'Bulk {operation.value}: {operand}'
    report = BulkUpdateReport(atomic=atomic)

    if atomic:
        committed: list[BulkLineResult] = []
        failed_id: int | None = None
        try:
            with repo.savepoint():
                for line in preview:
                    failed_id = line.variant_id
                    movement = set_variant_stock(
                        repo, variant_id=line.variant_id, new_quantity=line.new_quantity, ctx=ctx, notes=notes
                    )
                    committed.append(
                        BulkLineResult(
                            variant_id=line.variant_id,
                            previous_quantity=movement.previous_quantity,
                            new_quantity=line.new_quantity,
                            ok=True,
                        )
                    )
                failed_id = None
        except Exception as exc:
            logger.warning('Atomic bulk %s rolled back at variant %s: %s', operation.value, failed_id, exc)
            repo.rollback()
            report.results = [
                BulkLineResult(
                    variant_id=line.variant_id,
                    previous_quantity=None,
                    new_quantity=line.new_quantity,
                    ok=False,
                    error=str(exc) if line.variant_id == failed_id else ROLLED_BACK,
                )
                for line in preview
            ]
            return report
        report.results = committed
        repo.commit()
        logger.info('Atomic bulk %s applied to %s variants', operation.value, len(committed))
        return report

    for line in preview:
        try:
            with repo.savepoint():
                movement = set_variant_stock(
                    repo, variant_id=line.variant_id, new_quantity=line.new_quantity, ctx=ctx, notes=notes
                )
        except Exception as exc:
            logger.warning('Bulk %s failed for variant %s: %s', operation.value, line.variant_id, exc)
            report.results.append(
                BulkLineResult(
                    variant_id=line.variant_id,
                    previous_quantity=None,
                    new_quantity=line.new_quantity,
                    ok=False,
                    error=str(exc),
                )
            )
            continue
        report.results.append(
            BulkLineResult(
                variant_id=line.variant_id,
                previous_quantity=movement.previous_quantity,
                new_quantity=line.new_quantity,
                ok=True,
            )
        )
    repo.commit()
    logger.info('Bulk %s applied to %s of %s variants', operation.value, report.updated, len(preview))
    return report


def list_products(repo: InventoryRepository, *, include_inactive: bool = False) -> list[ProductSummary]:
    products = repo.list_products(include_inactive=include_inactive)
    variants_by_product: dict[int, list[InventoryVariant]] = {}
    for variant in repo.list_variants(product_ids=[product.id for product in products]):
        variants_by_product.setdefault(variant.product_id, []).append(variant)

    summaries: list[ProductSummary] = []
    for product in products:
        variants = variants_by_product.get(product.id, [])
        summaries.append(
            ProductSummary(
                product=product,
                variants=variants,
                total_stock=sum(variant.stock_quantity for variant in variants),
                low_stock_variants=sum(
                    1
                    for variant in variants
                    if stock_status(variant.stock_quantity, variant.low_stock_threshold) != StockStatus.IN_STOCK
                ),
            )
        )
    return summaries


def low_stock_alerts(repo: InventoryRepository) -> list[LowStockAlert]:
    alerts: list[LowStockAlert] = []
    for summary in list_products(repo):
        for variant in summary.variants:
            status = stock_status(variant.stock_quantity, variant.low_stock_threshold)
            if status == StockStatus.IN_STOCK:
                continue
            alerts.append(
                LowStockAlert(
                    variant_id=variant.id,
                    product_id=summary.product.id,
                    product_name=summary.product.name,
                    sku=variant.sku,
                    stock_quantity=variant.stock_quantity,
                    low_stock_threshold=variant.low_stock_threshold,
                    status=status,
                )
            )
    # Empty shelves first, then the thinnest margin over threshold.
    alerts.sort(key=lambda alert: (alert.stock_quantity > 0, alert.stock_quantity - alert.low_stock_threshold, alert.sku))
    return alerts


def create_product(
    repo: InventoryRepository,
    *,
    name: str,
    category: ProductCategory | str,
    sku_prefix: str,
    base_price: Decimal | str | float,
    description: str | None = None,
    subcategory: str | None = None,
    requires_size: bool | None = None,
    requires_color: bool | None = None,
    sizing_category: str | None = None,
) -> InventoryProduct:
    if not name or not name.strip():
        raise ValueError('Product name is required')
    if not sku_prefix or not sku_prefix.strip():
        raise ValueError('SKU prefix is required')
    category = ProductCategory(category)
    now = utcnow()
    product = repo.add(
        InventoryProduct(
            name=name.strip(),
            category=category,
            subcategory=subcategory,
            sku_prefix=sku_prefix.strip().upper(),
            base_price=_parse_price(base_price),
            description=description,
            is_active=True,
            requires_size=category != ProductCategory.ACCESSORIES if requires_size is None else requires_size,
            requires_color=True if requires_color is None else requires_color,
            sizing_category=sizing_category or (category.value if category != ProductCategory.ACCESSORIES else None),
            created_at=now,
            updated_at=now,
        )
    )
    repo.commit()
    logger.info('Created product %s (%s)', product.id, product.sku_prefix)
    return product


def update_product(repo: InventoryRepository, *, product_id: int, changes: dict) -> InventoryProduct:
    product = _require_product(repo, product_id)
    unknown = set(changes) - set(PRODUCT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown product fields: {', '.join(sorted(unknown))}")
    for key, value in changes.items():
        if key == 'base_price':
            value = _parse_price(value)
        elif key in ('name', 'sku_prefix') and (value is None or not str(value).strip()):
            raise ValueError(f'{key} cannot be blank')
        setattr(product, key, value)
    product.updated_at = utcnow()
    repo.save(product)
    repo.commit()
    return product


def deactivate_product(repo: InventoryRepository, *, product_id: int) -> InventoryProduct:
    product = _require_product(repo, product_id)
    if not product.is_active:
        return product
    product.is_active = False
    product.updated_at = utcnow()
    repo.save(product)
    repo.commit()
    logger.info('Deactivated product %s', product_id)
    return product


def create_variants(
    repo: InventoryRepository,
    *,
    product_id: int,
    specs: list[VariantSpec],
    ctx: RequestContext,
) -> list[InventoryVariant]:
    product = _require_product(repo, product_id)
    if not product.is_active:
        raise ValueError('Cannot add variants to an inactive product')
    if not specs:
        raise ValueError('Variants array is required')

    existing = {variant.sku for variant in repo.list_variants(include_inactive=True)}
    duplicates = sorted({spec.sku for spec in specs if spec.sku in existing})
    if duplicates:
        raise ValueError(f"SKUs already exist: {', '.join(duplicates)}")

    created: list[InventoryVariant] = []
    now = utcnow()
    for spec in specs:
        if spec.stock_quantity < 0 or spec.low_stock_threshold < 0:
            raise ValueError(f'Stock values cannot be negative for {spec.sku}')
        variant = repo.add(
            InventoryVariant(
                product_id=product.id,
                size_id=spec.size_id,
                color_id=spec.color_id,
                piece_type=spec.piece_type,
                sku=spec.sku,
                price=spec.price,
                stock_quantity=spec.stock_quantity,
                low_stock_threshold=spec.low_stock_threshold,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
        )
        if spec.stock_quantity > 0:
            repo.add(
                InventoryMovement(
                    variant_id=variant.id,
                    movement_type=MovementType.IN,
                    quantity=spec.stock_quantity,
                    previous_quantity=0,
                    new_quantity=spec.stock_quantity,
                    notes='Initial stock',
                    created_by=ctx.actor_id,
                )
            )
        created.append(variant)
    repo.commit()
    logger.info('Created %s variants for product %s', len(created), product_id)
    return created


def generate_product_variants(
    repo: InventoryRepository,
    *,
    product_id: int,
    color_ids: list[int],
    ctx: RequestContext,
    piece_types: list[str] | None = None,
    fit_type: str | None = None,
    definitions: Definitions | None = None,
) -> list[InventoryVariant]:
    product = _require_product(repo, product_id)
    definitions = definitions or load_definitions(repo)
    unknown_colors = [color_id for color_id in color_ids if definitions.color(color_id) is None]
    if unknown_colors:
        raise ValueError(f"Unknown color ids: {', '.join(str(color_id) for color_id in unknown_colors)}")

    category = ProductCategory(product.category)
    sizes = definitions.sizes_for(product.sizing_category or category.value)
    if category != ProductCategory.ACCESSORIES and not sizes:
        raise ValueError(f'No sizes defined for {product.sizing_category or category.value}')
    if category == ProductCategory.SUITS:
        specs = generate_suit_variants(
            sizes=sizes, color_ids=color_ids, piece_types=piece_types or [], base_price=product.base_price
        )
    elif category == ProductCategory.SHIRTS:
        specs = generate_shirt_variants(
            sizes=sizes, color_ids=color_ids, fit_type=fit_type or '', base_price=product.base_price
        )
    else:
        specs = generate_accessory_variants(
            color_ids=color_ids, base_price=product.base_price, sku_prefix=product.sku_prefix
        )
    return create_variants(repo, product_id=product_id, specs=specs, ctx=ctx)
