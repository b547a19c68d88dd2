from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from pydantic import BaseModel

from catalog_orders.domain.models import Order, Product


class DomainEvent(BaseModel, ABC):
    """Base for events staged in the outbox; event_type doubles as the routing key"""
    event_type: ClassVar[str]

    @property
    @abstractmethod
    def aggregate_id(self) -> str:
        pass


class OrderItemPayload(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal


class StockItemPayload(BaseModel):
    product_id: str
    quantity: int


class OrderCreated(DomainEvent):
    event_type: ClassVar[str] = "order.created"

    order_id: str
    order_number: str
    user_id: str
    total_amount: Decimal
    items: list[OrderItemPayload]
    created_at: datetime

    @property
    def aggregate_id(self) -> str:
        return self.order_id

    @classmethod
    def from_order(cls, order: Order) -> "OrderCreated":
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            total_amount=order.grand_total,
            items=[
                OrderItemPayload(product_id=i.product_id, quantity=i.quantity, unit_price=i.unit_price)
                for i in order.items
            ],
            created_at=order.created_at
        )


class StockEvent(DomainEvent):
    order_id: str
    items: list[StockItemPayload]

    @property
    def aggregate_id(self) -> str:
        return self.order_id

    @property
    def idempotency_key(self) -> str:
        # An order is paid at most once and cancelled at most once
        return f"{self.event_type}_{self.order_id}"

    @classmethod
    def from_order(cls, order: Order):
        return cls(
            order_id=order.id,
            items=[StockItemPayload(product_id=i.product_id, quantity=i.quantity) for i in order.items]
        )


class StockReservation(StockEvent):
    """Deduct stock after payment"""
    event_type: ClassVar[str] = "stock.reservation"


class StockRelease(StockEvent):
    """Restore stock after cancellation"""
    event_type: ClassVar[str] = "stock.release"


class ProductUpdated(DomainEvent):
    event_type: ClassVar[str] = "product.updated"

    product_id: str
    product_name: str
    price: Decimal
    stock_quantity: int
    updated_at: datetime

    @property
    def aggregate_id(self) -> str:
        return self.product_id

    @classmethod
    def from_product(cls, product: Product) -> "ProductUpdated":
        return cls(
            product_id=product.id,
            product_name=product.name,
            price=product.price,
            stock_quantity=product.stock_quantity,
            updated_at=product.updated_at or product.created_at
        )
