from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from catalog_orders.domain.models import OrderStatus, ProductStatus
from catalog_orders.application.products import StockOperation


class OrderItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)


class CreateOrderRequest(BaseModel):
    user_id: Optional[str] = None
    shipping_address: str = Field(min_length=1, max_length=500)
    notes: Optional[str] = None
    items: list[OrderItemRequest] = Field(min_length=1)


class UpdateOrderStatusRequest(BaseModel):
    status: str
    reason: Optional[str] = None


class UpdateOrderItemQuantityRequest(BaseModel):
    order_item_id: str
    quantity: int = Field(gt=0)


class CreateProductRequest(BaseModel):
    name: str
    description: str = ""
    sku: str
    price: Decimal
    stock_quantity: int = 0
    minimum_stock_level: int = 10


class UpdateProductRequest(BaseModel):
    name: str
    description: str = ""
    price: Decimal


class UpdateStockRequest(BaseModel):
    quantity: int
    operation: StockOperation


class SetDiscountRequest(BaseModel):
    discount_price: Decimal


class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    product_name: str
    unit_price: Decimal
    quantity: int
    total_price: Decimal


class OrderResponse(BaseModel):
    id: str
    order_number: str
    user_id: str
    status: OrderStatus
    total_amount: Decimal
    shipping_fee: Decimal
    total_discount: Decimal
    grand_total: Decimal
    shipping_address: str
    notes: Optional[str] = None
    payment_date: Optional[datetime] = None
    shipping_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    cancel_date: Optional[datetime] = None
    created_at: datetime
    items: list[OrderItemResponse]

    @classmethod
    def from_domain(cls, order):
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            total_amount=order.total_amount,
            shipping_fee=order.shipping_fee,
            total_discount=order.total_discount,
            grand_total=order.grand_total,
            shipping_address=order.shipping_address,
            notes=order.notes,
            payment_date=order.payment_date,
            shipping_date=order.shipping_date,
            delivery_date=order.delivery_date,
            cancel_date=order.cancel_date,
            created_at=order.created_at,
            items=[OrderItemResponse.model_validate(item, from_attributes=True) for item in order.items]
        )


class OrderSummaryResponse(BaseModel):
    id: str
    order_number: str
    user_id: str
    status: OrderStatus
    grand_total: Decimal
    item_count: int
    created_at: datetime

    @classmethod
    def from_domain(cls, order):
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            grand_total=order.grand_total,
            item_count=len(order.items),
            created_at=order.created_at
        )


class ProductResponse(BaseModel):
    id: str
    name: str
    description: str
    sku: str
    price: Decimal
    discount_price: Optional[Decimal] = None
    effective_price: Decimal
    stock_quantity: int
    minimum_stock_level: int
    status: ProductStatus
    is_in_stock: bool
    is_low_stock: bool

    @classmethod
    def from_domain(cls, product):
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            sku=product.sku,
            price=product.price,
            discount_price=product.discount_price,
            effective_price=product.effective_price,
            stock_quantity=product.stock_quantity,
            minimum_stock_level=product.minimum_stock_level,
            status=product.status,
            is_in_stock=product.is_in_stock,
            is_low_stock=product.is_low_stock
        )


class ApiResponse(BaseModel):
    success: bool
    data: Any = None
    message: str
    errors: list[str] = Field(default_factory=list)
