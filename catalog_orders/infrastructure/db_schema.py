from sqlalchemy import (
    Table, Column, String, Integer, Numeric, Boolean, Enum, DateTime, JSON, MetaData, ForeignKey, Text
)
from sqlalchemy.sql import func

from catalog_orders.domain.models import OrderStatus, ProductStatus

metadata = MetaData()

MONEY = Numeric(18, 2)


def _audit_columns():
    return [
        Column("created_at", DateTime(timezone=True), server_default=func.now()),
        Column("created_by", String, nullable=False, default="System"),
        Column("updated_at", DateTime(timezone=True), nullable=True),
        Column("updated_by", String, nullable=True),
        Column("deleted_at", DateTime(timezone=True), nullable=True, index=True),
        Column("deleted_by", String, nullable=True),
    ]


users_tbl = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_name", String, nullable=False, unique=True),
    Column("email", String, nullable=False, unique=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
)


products_tbl = Table(
    "products",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String(200), nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("sku", String(50), nullable=False, unique=True, index=True),
    Column("price", MONEY, nullable=False),
    Column("discount_price", MONEY, nullable=True),
    Column("stock_quantity", Integer, nullable=False, default=0),
    Column("minimum_stock_level", Integer, nullable=False, default=10),
    Column("status", Enum(ProductStatus), nullable=False, default=ProductStatus.DRAFT),
    *_audit_columns()
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_number", String(32), nullable=False, unique=True, index=True),
    Column("user_id", String, ForeignKey("users.id"), nullable=False, index=True),
    Column("status", Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING),
    Column("total_amount", MONEY, nullable=False, default=0),
    Column("shipping_fee", MONEY, nullable=False, default=0),
    Column("total_discount", MONEY, nullable=False, default=0),
    Column("grand_total", MONEY, nullable=False, default=0),
    Column("shipping_address", String(500), nullable=False),
    Column("notes", Text, nullable=True),
    Column("payment_date", DateTime(timezone=True), nullable=True),
    Column("shipping_date", DateTime(timezone=True), nullable=True),
    Column("delivery_date", DateTime(timezone=True), nullable=True),
    Column("cancel_date", DateTime(timezone=True), nullable=True),
    *_audit_columns()
)


order_items_tbl = Table(
    "order_items",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("product_id", String, ForeignKey("products.id"), nullable=False),
    Column("product_name", String(200), nullable=False),
    Column("unit_price", MONEY, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("total_price", MONEY, nullable=False),
    *_audit_columns()
)


outbox_events_tbl = Table(
    "outbox_events",
    metadata,
    Column("id", String, primary_key=True),
    Column("event_type", String, nullable=False),
    Column("event_data", JSON, nullable=False),
    Column("aggregate_id", String, nullable=False),
    Column("status", String, default="pending"),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("published_at", DateTime(timezone=True), nullable=True)
)


processed_events_tbl = Table(
    "processed_events",
    metadata,
    Column("idempotency_key", String, primary_key=True),
    Column("event_type", String, nullable=False),
    Column("aggregate_id", String, nullable=False),
    Column("processed_at", DateTime(timezone=True), server_default=func.now())
)
