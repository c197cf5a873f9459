from decimal import Decimal

from sqlalchemy import select

from menswear_ops.context import SYSTEM_CONTEXT
from menswear_ops.db import SessionLocal, engine
from menswear_ops.models import Base, ColorDefinition, Customer, InventoryProduct, Order, OrderSource, PriorityLevel, SizeDefinition
from menswear_ops.services.inventory_service import create_product, generate_product_variants
from menswear_ops.services.sql_repository import SqlInventoryRepository

SUIT_SIZES = ['36R', '38R', '40R', '42R', '44R', '46R']
SHIRT_SIZES = ['14.5', '15', '15.5', '16', '16.5', '17']
COLORS = [
    ('Navy', 'NAVY', '#1f2a44'),
    ('Charcoal', 'CHAR', '#36454f'),
    ('Black', 'BLK', '#000000'),
]


def _seed_sizes(db, category: str, codes: list[str]) -> None:
    existing = set(db.execute(select(SizeDefinition.size_code).where(SizeDefinition.category == category)).scalars())
    for idx, code in enumerate(codes):
        if code not in existing:
            db.add(SizeDefinition(category=category, size_code=code, size_label=code, sort_order=idx))


def seed() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        _seed_sizes(db, 'suits', SUIT_SIZES)
        _seed_sizes(db, 'shirts', SHIRT_SIZES)
        existing_colors = set(db.execute(select(ColorDefinition.color_code)).scalars())
        for name, code, hex_value in COLORS:
            if code not in existing_colors:
                db.add(ColorDefinition(color_name=name, color_code=code, hex_value=hex_value))
        db.commit()

        repo = SqlInventoryRepository(db)
        suit = db.execute(select(InventoryProduct).where(InventoryProduct.sku_prefix == 'SUIT-CLASSIC')).scalar_one_or_none()
        if not suit:
            suit = create_product(
                repo,
                name='Classic Suit',
                category='suits',
                sku_prefix='SUIT-CLASSIC',
                base_price=Decimal('299.99'),
            )
            color_ids = list(db.execute(select(ColorDefinition.id).order_by(ColorDefinition.id.asc())).scalars())
            generate_product_variants(
                repo,
                product_id=suit.id,
                color_ids=color_ids[:2],
                piece_types=['2-piece', '3-piece'],
                ctx=SYSTEM_CONTEXT,
            )

        customer = db.execute(select(Customer).where(Customer.email == 'groom@example.com')).scalar_one_or_none()
        if not customer:
            customer = Customer(email='groom@example.com', first_name='Demo', last_name='Groom')
            db.add(customer)
            db.flush()
            db.add(
                Order(
                    order_number='KCT-DEMO-0001',
                    customer_id=customer.id,
                    source=OrderSource.MANUAL,
                    priority_level=PriorityLevel.WEDDING,
                    total_amount=Decimal('649.98'),
                )
            )
        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
