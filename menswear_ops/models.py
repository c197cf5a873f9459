from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER primary keys.
BigIntKey = BigInteger().with_variant(Integer(), 'sqlite')


class Base(DeclarativeBase):
    pass


def _enum(enum_cls: type[Enum], name: str) -> SQLEnum:
    # Store the lowercase wire values, not the member names.
    return SQLEnum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


class ProductCategory(str, Enum):
    SUITS = 'suits'
    SHIRTS = 'shirts'
    ACCESSORIES = 'accessories'


class MovementType(str, Enum):
    IN = 'in'
    OUT = 'out'
    ADJUSTMENT = 'adjustment'


class OrderStatus(str, Enum):
    PENDING = 'pending'
    PROCESSING = 'processing'
    CONFIRMED = 'confirmed'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'
    REFUNDED = 'refunded'


class WorkflowStatus(str, Enum):
    PENDING_PAYMENT = 'pending_payment'
    PAYMENT_CONFIRMED = 'payment_confirmed'
    PROCESSING = 'processing'
    IN_PRODUCTION = 'in_production'
    QUALITY_CHECK = 'quality_check'
    COMPLETED = 'completed'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


class OrderSource(str, Enum):
    STRIPE = 'stripe'
    SUPABASE = 'supabase'
    MANUAL = 'manual'


class PriorityLevel(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'
    WEDDING = 'wedding'
    RUSH = 'rush'


PriorityLevelType = _enum(PriorityLevel, 'priority_level')


class ExceptionStatus(str, Enum):
    OPEN = 'open'
    IN_PROGRESS = 'in_progress'
    RESOLVED = 'resolved'
    ESCALATED = 'escalated'


class CommunicationType(str, Enum):
    EMAIL = 'email'
    SMS = 'sms'
    CALL = 'call'
    SYSTEM = 'system'


class CommunicationDirection(str, Enum):
    INBOUND = 'inbound'
    OUTBOUND = 'outbound'


class SizeDefinition(Base):
    __tablename__ = 'size_definitions'
    __table_args__ = (UniqueConstraint('category', 'size_code', name='uq_size_definitions_category_code'),)

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    size_code: Mapped[str] = mapped_column(Text, nullable=False)
    size_label: Mapped[str] = mapped_column(Text, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ColorDefinition(Base):
    __tablename__ = 'color_definitions'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    color_name: Mapped[str] = mapped_column(Text, nullable=False)
    color_code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    hex_value: Mapped[str | None] = mapped_column(String(7))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class InventoryProduct(Base):
    __tablename__ = 'inventory_products'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ProductCategory] = mapped_column(_enum(ProductCategory, 'product_category'), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(Text)
    sku_prefix: Mapped[str] = mapped_column(Text, nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    requires_size: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')
    requires_color: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')
    sizing_category: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class InventoryVariant(Base):
    __tablename__ = 'inventory_variants'
    __table_args__ = (
        CheckConstraint('stock_quantity >= 0', name='ck_inventory_variants_stock_non_negative'),
        CheckConstraint('low_stock_threshold >= 0', name='ck_inventory_variants_threshold_non_negative'),
    )

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigIntKey, ForeignKey('inventory_products.id'), nullable=False)
    size_id: Mapped[int | None] = mapped_column(BigIntKey, ForeignKey('size_definitions.id'))
    color_id: Mapped[int | None] = mapped_column(BigIntKey, ForeignKey('color_definitions.id'))
    piece_type: Mapped[str | None] = mapped_column(Text)
    sku: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=5, server_default='5')
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class InventoryMovement(Base):
    __tablename__ = 'inventory_movements'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    variant_id: Mapped[int] = mapped_column(BigIntKey, ForeignKey('inventory_variants.id'), nullable=False)
    movement_type: Mapped[MovementType] = mapped_column(_enum(MovementType, 'movement_type'), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    new_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ProductImage(Base):
    __tablename__ = 'product_images'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigIntKey, ForeignKey('inventory_products.id'), nullable=False)
    storage_path: Mapped[str] = mapped_column(Text, nullable=False)
    image_type: Mapped[str] = mapped_column(Text, nullable=False, default='gallery', server_default='gallery')
    alt_text: Mapped[str | None] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Customer(Base):
    __tablename__ = 'customers'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str | None] = mapped_column(Text)
    last_name: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Order(Base):
    __tablename__ = 'orders'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    order_number: Mapped[str | None] = mapped_column(Text, unique=True)
    customer_id: Mapped[int | None] = mapped_column(BigIntKey, ForeignKey('customers.id'))
    status: Mapped[OrderStatus] = mapped_column(
        _enum(OrderStatus, 'order_status'), nullable=False, default=OrderStatus.PENDING, server_default='pending'
    )
    source: Mapped[OrderSource] = mapped_column(
        _enum(OrderSource, 'order_source'), nullable=False, default=OrderSource.MANUAL, server_default='manual'
    )
    priority_level: Mapped[PriorityLevel | None] = mapped_column(PriorityLevelType)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default='USD', server_default='USD')
    special_instructions: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OrderItem(Base):
    __tablename__ = 'order_items'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    order_id: Mapped[int] = mapped_column(BigIntKey, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int | None] = mapped_column(BigIntKey)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OrderException(Base):
    __tablename__ = 'order_exceptions'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    order_id: Mapped[int] = mapped_column(BigIntKey, ForeignKey('orders.id'), nullable=False)
    exception_type: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ExceptionStatus] = mapped_column(
        _enum(ExceptionStatus, 'exception_status'), nullable=False, default=ExceptionStatus.OPEN, server_default='open'
    )
    priority_level: Mapped[PriorityLevel] = mapped_column(
        PriorityLevelType, nullable=False, default=PriorityLevel.MEDIUM, server_default='medium'
    )
    assigned_to: Mapped[str | None] = mapped_column(Text)
    resolution_notes: Mapped[str | None] = mapped_column(Text)
    escalation_reason: Mapped[str | None] = mapped_column(Text)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    escalated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CommunicationLog(Base):
    __tablename__ = 'communication_logs'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    order_id: Mapped[int] = mapped_column(BigIntKey, ForeignKey('orders.id'), nullable=False)
    customer_id: Mapped[int | None] = mapped_column(BigIntKey, ForeignKey('customers.id'))
    communication_type: Mapped[CommunicationType] = mapped_column(
        _enum(CommunicationType, 'communication_type'), nullable=False
    )
    direction: Mapped[CommunicationDirection] = mapped_column(
        _enum(CommunicationDirection, 'communication_direction'), nullable=False
    )
    subject: Mapped[str] = mapped_column(Text, nullable=False, default='', server_default='')
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    response_received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')


class ProcessingAnalytics(Base):
    __tablename__ = 'processing_analytics'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    order_id: Mapped[int] = mapped_column(BigIntKey, ForeignKey('orders.id'), nullable=False)
    processing_stage: Mapped[WorkflowStatus] = mapped_column(_enum(WorkflowStatus, 'workflow_status'), nullable=False)
    stage_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    automated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OrderPriorityQueue(Base):
    __tablename__ = 'order_priority_queue'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    order_id: Mapped[int] = mapped_column(BigIntKey, ForeignKey('orders.id'), nullable=False)
    priority_level: Mapped[PriorityLevel] = mapped_column(PriorityLevelType, nullable=False)
    queue_position: Mapped[int] = mapped_column(Integer, nullable=False)
    estimated_processing_time: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AnalyticsSession(Base):
    __tablename__ = 'analytics_sessions'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    session_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    user_id: Mapped[str | None] = mapped_column(Text)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    user_agent: Mapped[str | None] = mapped_column(Text)
    referrer: Mapped[str | None] = mapped_column(Text)
    utm_source: Mapped[str | None] = mapped_column(Text)
    utm_medium: Mapped[str | None] = mapped_column(Text)
    utm_campaign: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AnalyticsPageView(Base):
    __tablename__ = 'analytics_page_views'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    session_id: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str | None] = mapped_column(Text)
    page_path: Mapped[str] = mapped_column(Text, nullable=False)
    page_title: Mapped[str | None] = mapped_column(Text)
    referrer: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class AnalyticsEvent(Base):
    __tablename__ = 'analytics_events'

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True)
    session_id: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str | None] = mapped_column(Text)
    event_type: Mapped[str] = mapped_column(Text, nullable=False)
    properties: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
