from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from menswear_ops.models import (
    CommunicationDirection,
    CommunicationType,
    ExceptionStatus,
    MovementType,
    OrderSource,
    OrderStatus,
    PriorityLevel,
    ProductCategory,
    WorkflowStatus,
)
from menswear_ops.services.stock_adjustment_service import BulkOperation, StockStatus


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SizeOut(OrmModel):
    id: int
    category: str
    size_code: str
    size_label: str
    sort_order: int


class ColorOut(OrmModel):
    id: int
    color_name: str
    color_code: str
    hex_value: str | None = None


class DefinitionsOut(BaseModel):
    sizes: list[SizeOut]
    colors: list[ColorOut]


class VariantOut(OrmModel):
    id: int
    product_id: int
    size_id: int | None = None
    color_id: int | None = None
    piece_type: str | None = None
    sku: str
    price: Decimal
    stock_quantity: int
    low_stock_threshold: int
    is_active: bool


class ProductOut(OrmModel):
    id: int
    name: str
    category: ProductCategory
    subcategory: str | None = None
    sku_prefix: str
    base_price: Decimal
    description: str | None = None
    is_active: bool
    requires_size: bool
    requires_color: bool
    sizing_category: str | None = None


class ProductSummaryOut(BaseModel):
    product: ProductOut
    variants: list[VariantOut]
    total_stock: int
    low_stock_variants: int


class ProductCreate(BaseModel):
    name: str
    category: ProductCategory
    sku_prefix: str
    base_price: Decimal
    description: str | None = None
    subcategory: str | None = None
    requires_size: bool | None = None
    requires_color: bool | None = None
    sizing_category: str | None = None


class ProductUpdate(BaseModel):
    name: str | None = None
    subcategory: str | None = None
    sku_prefix: str | None = None
    base_price: Decimal | None = None
    description: str | None = None
    requires_size: bool | None = None
    requires_color: bool | None = None
    sizing_category: str | None = None


class VariantGenerateRequest(BaseModel):
    color_ids: list[int]
    piece_types: list[str] = Field(default_factory=list)
    fit_type: str | None = None


class StockUpdateRequest(BaseModel):
    value: str | int
    notes: str | None = None


class MovementOut(OrmModel):
    id: int
    variant_id: int
    movement_type: MovementType
    quantity: int
    previous_quantity: int
    new_quantity: int
    notes: str | None = None
    created_by: str | None = None


class BulkRequest(BaseModel):
    variant_ids: list[int]
    operation: BulkOperation
    operand: str
    atomic: bool = False


class VariantStockOut(BaseModel):
    variant_id: int
    product_name: str
    sku: str
    category: str
    stock_quantity: int
    low_stock_threshold: int
    status: StockStatus


class PreviewLineOut(BaseModel):
    variant_id: int
    product_name: str
    sku: str
    current_quantity: int
    new_quantity: int
    delta: int


class BulkLineOut(BaseModel):
    variant_id: int
    previous_quantity: int | None = None
    new_quantity: int
    ok: bool
    error: str | None = None


class BulkReportOut(BaseModel):
    atomic: bool
    success: bool
    updated: int
    failed_variant_ids: list[int]
    results: list[BulkLineOut]


class LowStockAlertOut(BaseModel):
    variant_id: int
    product_id: int
    product_name: str
    sku: str
    stock_quantity: int
    low_stock_threshold: int
    status: StockStatus


class ImageUploadRequest(BaseModel):
    file_name: str
    content_type: str
    data_base64: str
    image_type: str = 'gallery'
    alt_text: str | None = None


class ImageOut(BaseModel):
    id: int
    product_id: int
    storage_path: str
    public_url: str
    image_type: str
    alt_text: str | None = None
    position: int


class OrderOut(OrmModel):
    id: int
    order_number: str | None = None
    customer_id: int | None = None
    status: OrderStatus
    source: OrderSource
    priority_level: PriorityLevel | None = None
    total_amount: Decimal
    currency: str
    special_instructions: str | None = None
    created_at: datetime
    updated_at: datetime


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PriorityUpdate(BaseModel):
    priority_level: PriorityLevel | None = None


class PriorityQueueOut(OrmModel):
    id: int
    order_id: int
    priority_level: PriorityLevel
    queue_position: int
    estimated_processing_time: str | None = None


class ExceptionCreate(BaseModel):
    exception_type: str
    description: str
    assigned_to: str | None = None


class ExceptionOut(OrmModel):
    id: int
    order_id: int
    exception_type: str
    description: str
    status: ExceptionStatus
    priority_level: PriorityLevel
    assigned_to: str | None = None
    resolution_notes: str | None = None
    escalation_reason: str | None = None
    resolved_at: datetime | None = None
    escalated_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ResolveRequest(BaseModel):
    notes: str | None = None


class EscalateRequest(BaseModel):
    reason: str | None = None


class CommunicationCreate(BaseModel):
    customer_id: int | None = None
    communication_type: CommunicationType
    direction: CommunicationDirection
    subject: str | None = None
    content: str


class DispatchRequest(BaseModel):
    communication_type: str
    message: str | None = None


class CommunicationOut(OrmModel):
    id: int
    order_id: int
    customer_id: int | None = None
    communication_type: CommunicationType
    direction: CommunicationDirection
    subject: str
    content: str
    sent_at: datetime
    response_received: bool


class ProcessingStageCreate(BaseModel):
    stage: WorkflowStatus
    duration_minutes: int
    automated: bool = False


class ProcessingAnalyticsOut(OrmModel):
    id: int
    order_id: int
    processing_stage: WorkflowStatus
    stage_duration_minutes: int
    automated: bool
    created_at: datetime


class AnalyticsRunRequest(BaseModel):
    body: dict[str, Any] = Field(default_factory=dict)


class WorkflowActionRequest(BaseModel):
    action: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ExceptionAutomationRequest(BaseModel):
    action: str


class WeddingActionRequest(BaseModel):
    action: str
    params: dict[str, Any] = Field(default_factory=dict)


class FunctionDataOut(BaseModel):
    data: Any = None


class OrderBoardOut(BaseModel):
    queue: list[OrderOut]
    open_exceptions: list[ExceptionOut]


class SessionStartRequest(BaseModel):
    referrer: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None


class SessionOut(BaseModel):
    session_id: str


class TrackedItem(BaseModel):
    event_type: str
    page_path: str | None = None
    page_title: str | None = None
    referrer: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class TrackRequest(BaseModel):
    items: list[TrackedItem]


class TrackOut(BaseModel):
    session_id: str
    written: int
    dropped: int
