from __future__ import annotations

import base64
import binascii
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from menswear_ops.context import RequestContext
from menswear_ops.dependencies import get_functions, get_inventory_repository, get_request_context
from menswear_ops.schemas import (
    BulkReportOut,
    BulkRequest,
    ColorOut,
    DefinitionsOut,
    ImageOut,
    ImageUploadRequest,
    LowStockAlertOut,
    MovementOut,
    PreviewLineOut,
    ProductCreate,
    ProductOut,
    ProductSummaryOut,
    ProductUpdate,
    SizeOut,
    StockUpdateRequest,
    VariantGenerateRequest,
    VariantOut,
    VariantStockOut,
)
from menswear_ops.services.definitions_service import definitions_cache, load_definitions
from menswear_ops.services.function_client import FunctionClient, RemoteFunctionError
from menswear_ops.services.image_service import delete_product_image, list_product_images, upload_product_image
from menswear_ops.services.inventory_service import (
    apply_bulk_update,
    create_product,
    deactivate_product,
    generate_product_variants,
    list_products,
    low_stock_alerts,
    update_product,
    update_variant_stock,
    variant_stock_rows,
)
from menswear_ops.services.repository import InventoryRepository, NotFoundError
from menswear_ops.services.stock_adjustment_service import build_bulk_preview, filter_variants, stock_status

router = APIRouter(prefix='/inventory', tags=['inventory'])


def _summary_out(summary) -> ProductSummaryOut:
    return ProductSummaryOut(
        product=ProductOut.model_validate(summary.product),
        variants=[VariantOut.model_validate(variant) for variant in summary.variants],
        total_stock=summary.total_stock,
        low_stock_variants=summary.low_stock_variants,
    )


def _definitions_out(loaded) -> DefinitionsOut:
    return DefinitionsOut(
        sizes=[SizeOut.model_validate(size) for size in loaded.sizes],
        colors=[ColorOut.model_validate(color) for color in loaded.colors],
    )


def _preview(repo: InventoryRepository, payload: BulkRequest):
    return build_bulk_preview(
        variant_stock_rows(repo),
        selected_ids=payload.variant_ids,
        operation=payload.operation,
        operand=payload.operand,
    )


@router.get('/definitions', response_model=DefinitionsOut)
def definitions(repo: InventoryRepository = Depends(get_inventory_repository)):
    loaded = definitions_cache.get(lambda: load_definitions(repo))
    return _definitions_out(loaded)


@router.post('/definitions/refresh', response_model=DefinitionsOut)
def refresh_definitions(repo: InventoryRepository = Depends(get_inventory_repository)):
    definitions_cache.invalidate()
    loaded = definitions_cache.get(lambda: load_definitions(repo))
    return _definitions_out(loaded)


@router.get('/products', response_model=list[ProductSummaryOut])
def products(
    include_inactive: bool = False,
    repo: InventoryRepository = Depends(get_inventory_repository),
):
    return [_summary_out(summary) for summary in list_products(repo, include_inactive=include_inactive)]


@router.post('/products', response_model=ProductOut, status_code=201)
def add_product(payload: ProductCreate, repo: InventoryRepository = Depends(get_inventory_repository)):
    try:
        return create_product(repo, **payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.patch('/products/{product_id}', response_model=ProductOut)
def edit_product(
    product_id: int,
    payload: ProductUpdate,
    repo: InventoryRepository = Depends(get_inventory_repository),
):
    try:
        return update_product(repo, product_id=product_id, changes=payload.model_dump(exclude_unset=True))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/products/{product_id}/deactivate', response_model=ProductOut)
def remove_product(product_id: int, repo: InventoryRepository = Depends(get_inventory_repository)):
    try:
        return deactivate_product(repo, product_id=product_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post('/products/{product_id}/variants', response_model=list[VariantOut], status_code=201)
def generate_variants(
    product_id: int,
    payload: VariantGenerateRequest,
    repo: InventoryRepository = Depends(get_inventory_repository),
    ctx: RequestContext = Depends(get_request_context),
):
    try:
        return generate_product_variants(
            repo,
            product_id=product_id,
            color_ids=payload.color_ids,
            piece_types=payload.piece_types,
            fit_type=payload.fit_type,
            ctx=ctx,
            definitions=definitions_cache.get(lambda: load_definitions(repo)),
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get('/stock', response_model=list[VariantStockOut])
def stock(
    search: str = '',
    category: str = 'all',
    repo: InventoryRepository = Depends(get_inventory_repository),
):
    rows = filter_variants(variant_stock_rows(repo), search=search, category=category)
    return [
        VariantStockOut(**asdict(row), status=stock_status(row.stock_quantity, row.low_stock_threshold))
        for row in rows
    ]


@router.put('/variants/{variant_id}/stock', response_model=VariantOut)
def set_stock(
    variant_id: int,
    payload: StockUpdateRequest,
    repo: InventoryRepository = Depends(get_inventory_repository),
    ctx: RequestContext = Depends(get_request_context),
):
    kwargs = {'notes': payload.notes} if payload.notes else {}
    try:
        return update_variant_stock(repo, variant_id=variant_id, raw_value=payload.value, ctx=ctx, **kwargs)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get('/variants/{variant_id}/movements', response_model=list[MovementOut])
def movements(variant_id: int, repo: InventoryRepository = Depends(get_inventory_repository)):
    if repo.get_variant(variant_id) is None:
        raise HTTPException(status_code=404, detail=f'Variant {variant_id} not found')
    return repo.list_movements(variant_id=variant_id)


@router.post('/bulk/preview', response_model=list[PreviewLineOut])
def bulk_preview(payload: BulkRequest, repo: InventoryRepository = Depends(get_inventory_repository)):
    return [PreviewLineOut(**asdict(line), delta=line.delta) for line in _preview(repo, payload)]


@router.post('/bulk/apply', response_model=BulkReportOut)
def bulk_apply(
    payload: BulkRequest,
    repo: InventoryRepository = Depends(get_inventory_repository),
    ctx: RequestContext = Depends(get_request_context),
):
    preview = _preview(repo, payload)
    if not preview:
        raise HTTPException(status_code=400, detail='Select at least one variant')
    report = apply_bulk_update(
        repo,
        preview=preview,
        operation=payload.operation,
        operand=payload.operand,
        ctx=ctx,
        atomic=payload.atomic,
    )
    return BulkReportOut(
        atomic=report.atomic,
        success=report.success,
        updated=report.updated,
        failed_variant_ids=report.failed_variant_ids,
        results=[asdict(result) for result in report.results],
    )


@router.get('/alerts/low-stock', response_model=list[LowStockAlertOut])
def low_stock(repo: InventoryRepository = Depends(get_inventory_repository)):
    return [asdict(alert) for alert in low_stock_alerts(repo)]


@router.get('/products/{product_id}/images', response_model=list[ImageOut])
def images(product_id: int, repo: InventoryRepository = Depends(get_inventory_repository)):
    if repo.get_product(product_id) is None:
        raise HTTPException(status_code=404, detail=f'Product {product_id} not found')
    return [asdict(image) for image in list_product_images(repo, product_id=product_id)]


@router.post('/products/{product_id}/images', response_model=ImageOut, status_code=201)
def upload_image(
    product_id: int,
    payload: ImageUploadRequest,
    repo: InventoryRepository = Depends(get_inventory_repository),
    client: FunctionClient = Depends(get_functions),
):
    try:
        content = base64.b64decode(payload.data_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail='Image data must be base64 encoded') from exc
    try:
        image = upload_product_image(
            client,
            repo,
            product_id=product_id,
            file_name=payload.file_name,
            content_type=payload.content_type,
            content=content,
            image_type=payload.image_type,
            alt_text=payload.alt_text,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RemoteFunctionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return asdict(image)


@router.delete('/images/{image_id}', status_code=204)
def delete_image(
    image_id: int,
    repo: InventoryRepository = Depends(get_inventory_repository),
    client: FunctionClient = Depends(get_functions),
):
    try:
        delete_product_image(client, repo, image_id=image_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RemoteFunctionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
