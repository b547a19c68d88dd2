import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from pydantic import BaseModel, Field

from catalog_orders.domain.exceptions import (
    BusinessRuleError, InsufficientStockError, InvalidOrderStateError, ValidationError
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ProductStatus(str, Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    OUT_OF_STOCK = "OutOfStock"
    DISCONTINUED = "Discontinued"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PAID = "Paid"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class AuditedEntity(BaseModel):
    """Common audit and soft-delete fields"""
    id: str = Field(default_factory=_new_id)
    created_at: datetime = Field(default_factory=_now)
    created_by: str = "System"
    updated_at: datetime | None = None
    updated_by: str | None = None
    deleted_at: datetime | None = None
    deleted_by: str | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def _touch(self, actor: str) -> None:
        self.updated_at = _now()
        self.updated_by = actor

    def soft_delete(self, actor: str) -> None:
        self.deleted_at = _now()
        self.deleted_by = actor
        self._touch(actor)


class User(BaseModel):
    """Order owner, managed by the identity service"""
    id: str
    user_name: str
    email: str
    is_active: bool = True


class Product(AuditedEntity):
    """Catalog product; owns its stock quantity and status"""
    name: str
    description: str = ""
    sku: str
    price: Decimal
    discount_price: Decimal | None = None
    stock_quantity: int = 0
    minimum_stock_level: int = 10
    status: ProductStatus = ProductStatus.DRAFT

    @classmethod
    def create(
        cls,
        name: str,
        description: str,
        sku: str,
        price: Decimal,
        stock_quantity: int,
        created_by: str,
        minimum_stock_level: int = 10
    ) -> "Product":
        product = cls(
            name=name,
            description=description,
            sku=sku,
            price=price,
            stock_quantity=stock_quantity,
            minimum_stock_level=minimum_stock_level,
            status=ProductStatus.DRAFT,
            created_by=created_by
        )
        product._validate()
        return product

    @property
    def effective_price(self) -> Decimal:
        return self.discount_price if self.discount_price is not None else self.price

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.minimum_stock_level

    @property
    def is_in_stock(self) -> bool:
        return self.stock_quantity > 0 and self.status == ProductStatus.ACTIVE

    def update_info(self, name: str, description: str, price: Decimal, actor: str) -> None:
        self.name = name
        self.description = description
        self.price = price
        self._touch(actor)
        self._validate()

    def update_stock(self, quantity: int, actor: str) -> None:
        """Sets the stock level and flips Active/OutOfStock to match it"""
        if quantity < 0:
            raise BusinessRuleError("Stock quantity cannot be negative")

        self.stock_quantity = quantity
        self._touch(actor)

        if self.stock_quantity == 0 and self.status == ProductStatus.ACTIVE:
            self.status = ProductStatus.OUT_OF_STOCK
        elif self.stock_quantity > 0 and self.status == ProductStatus.OUT_OF_STOCK:
            self.status = ProductStatus.ACTIVE

    def add_stock(self, quantity: int, actor: str) -> None:
        if quantity <= 0:
            raise BusinessRuleError("Quantity must be positive")
        self.update_stock(self.stock_quantity + quantity, actor)

    def reduce_stock(self, quantity: int, actor: str) -> None:
        if quantity <= 0:
            raise BusinessRuleError("Quantity must be positive")
        if self.stock_quantity < quantity:
            raise InsufficientStockError(self.stock_quantity, quantity, self.name)
        self.update_stock(self.stock_quantity - quantity, actor)

    def set_discount(self, discount_price: Decimal, actor: str) -> None:
        if discount_price >= self.price:
            raise BusinessRuleError("Discount price must be less than regular price")
        if discount_price < 0:
            raise BusinessRuleError("Discount price cannot be negative")
        self.discount_price = discount_price
        self._touch(actor)

    def remove_discount(self, actor: str) -> None:
        self.discount_price = None
        self._touch(actor)

    def activate(self, actor: str) -> None:
        if self.stock_quantity == 0:
            raise BusinessRuleError("Cannot activate product with zero stock")
        self.status = ProductStatus.ACTIVE
        self._touch(actor)

    def deactivate(self, actor: str) -> None:
        self.status = ProductStatus.INACTIVE
        self._touch(actor)

    def _validate(self) -> None:
        errors = []
        if not self.name or not self.name.strip():
            errors.append("Product name is required")
        elif len(self.name) > 200:
            errors.append("Product name cannot exceed 200 characters")
        if not self.sku or not self.sku.strip():
            errors.append("SKU is required")
        if self.price <= 0:
            errors.append("Price must be greater than zero")
        elif self.discount_price is not None and self.discount_price >= self.price:
            errors.append("Discount price must be less than regular price")
        if self.stock_quantity < 0:
            errors.append("Stock quantity cannot be negative")
        if errors:
            raise ValidationError("Product validation failed", errors)


class OrderItem(AuditedEntity):
    """Order line; name and price are snapshots taken when the line was added"""
    order_id: str
    product_id: str
    product_name: str
    unit_price: Decimal
    quantity: int
    total_price: Decimal

    @classmethod
    def create(cls, order_id: str, product_id: str, product_name: str, unit_price: Decimal, quantity: int) -> "OrderItem":
        if quantity <= 0:
            raise BusinessRuleError("Quantity must be greater than 0")
        if unit_price < 0:
            raise BusinessRuleError("Unit price cannot be negative")
        return cls(
            order_id=order_id,
            product_id=product_id,
            product_name=product_name,
            unit_price=unit_price,
            quantity=quantity,
            total_price=unit_price * quantity
        )

    def update_quantity(self, quantity: int, actor: str = "System") -> None:
        if quantity <= 0:
            raise BusinessRuleError("Quantity must be greater than 0")
        self.quantity = quantity
        self.total_price = self.unit_price * quantity
        self._touch(actor)


class Order(AuditedEntity):
    """Order aggregate: line items, totals and the status state machine.

    Transitions:
        Pending -> Confirmed -> Paid -> Shipped -> Delivered
        any status except Delivered -> Cancelled
    """
    order_number: str
    user_id: str
    status: OrderStatus = OrderStatus.PENDING
    items: list[OrderItem] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    shipping_fee: Decimal = Decimal("0")
    total_discount: Decimal = Decimal("0")
    grand_total: Decimal = Decimal("0")
    shipping_address: str
    notes: str | None = None
    payment_date: datetime | None = None
    shipping_date: datetime | None = None
    delivery_date: datetime | None = None
    cancel_date: datetime | None = None

    @classmethod
    def create(cls, user_id: str, shipping_address: str, notes: str | None, created_by: str) -> "Order":
        return cls(
            order_number=cls.generate_order_number(),
            user_id=user_id,
            status=OrderStatus.PENDING,
            shipping_address=shipping_address,
            notes=notes,
            created_by=created_by
        )

    @staticmethod
    def generate_order_number() -> str:
        return f"ORD-{_now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"

    # Line items

    def add_item(
        self, product_id: str, product_name: str, unit_price: Decimal, quantity: int, actor: str | None = None
    ) -> OrderItem:
        if self.status != OrderStatus.PENDING:
            raise InvalidOrderStateError("Cannot add items to a non-pending order")
        if quantity <= 0:
            raise BusinessRuleError("Quantity must be greater than 0")

        item = OrderItem.create(self.id, product_id, product_name, unit_price, quantity)
        self.items.append(item)
        self._items_changed(actor)
        return item

    def remove_item(self, item_id: str, actor: str | None = None) -> None:
        if self.status != OrderStatus.PENDING:
            raise InvalidOrderStateError("Cannot remove items from a non-pending order")

        item = self._find_item(item_id)
        if item is not None:
            self.items.remove(item)
            self._items_changed(actor)

    def update_item_quantity(self, item_id: str, quantity: int, actor: str | None = None) -> None:
        if self.status != OrderStatus.PENDING:
            raise InvalidOrderStateError("Cannot update items in a non-pending order")
        if quantity <= 0:
            raise BusinessRuleError("Quantity must be greater than 0")

        item = self._find_item(item_id)
        if item is None:
            raise BusinessRuleError("Order item not found")

        item.update_quantity(quantity, actor or "System")
        self._items_changed(actor)

    def set_shipping_fee(self, fee: Decimal) -> None:
        if fee < 0:
            raise BusinessRuleError("Shipping fee cannot be negative")
        self.shipping_fee = fee
        self._recalculate_totals()

    def apply_discount(self, discount: Decimal) -> None:
        if discount < 0:
            raise BusinessRuleError("Discount cannot be negative")
        self.total_discount = discount
        self._recalculate_totals()

    # State machine

    def confirm(self, actor: str) -> None:
        if self.status != OrderStatus.PENDING:
            raise InvalidOrderStateError("Only pending orders can be confirmed")
        if not self.items:
            raise InvalidOrderStateError("Cannot confirm order without items")
        self.status = OrderStatus.CONFIRMED
        self._touch(actor)

    def pay(self, actor: str) -> None:
        if self.status != OrderStatus.CONFIRMED:
            raise InvalidOrderStateError("Only confirmed orders can be paid")
        self.status = OrderStatus.PAID
        self.payment_date = _now()
        self._touch(actor)

    def ship(self, actor: str) -> None:
        if self.status != OrderStatus.PAID:
            raise InvalidOrderStateError("Only paid orders can be shipped")
        self.status = OrderStatus.SHIPPED
        self.shipping_date = _now()
        self._touch(actor)

    def deliver(self, actor: str) -> None:
        if self.status != OrderStatus.SHIPPED:
            raise InvalidOrderStateError("Only shipped orders can be delivered")
        self.status = OrderStatus.DELIVERED
        self.delivery_date = _now()
        self._touch(actor)

    def cancel(self, actor: str, reason: str | None = None) -> None:
        if self.status == OrderStatus.DELIVERED:
            raise InvalidOrderStateError("Cannot cancel delivered orders")
        self.status = OrderStatus.CANCELLED
        self.cancel_date = _now()
        line = f"Cancelled: {reason or ''}".rstrip()
        self.notes = line if not self.notes else f"{self.notes}\n{line}"
        self._touch(actor)

    def can_be_deleted(self) -> bool:
        return self.status in (OrderStatus.PENDING, OrderStatus.CANCELLED)

    def _find_item(self, item_id: str) -> OrderItem | None:
        return next((item for item in self.items if item.id == item_id), None)

    def _items_changed(self, actor: str | None) -> None:
        self._recalculate_totals()
        if actor:
            self._touch(actor)

    def _recalculate_totals(self) -> None:
        self.total_amount = sum((item.total_price for item in self.items), Decimal("0"))
        self.grand_total = self.total_amount + self.shipping_fee - self.total_discount
