"""Shared fixtures: an in-memory unit of work that mirrors the SQLAlchemy one.

Every ``async with uow() as session`` works on deep copies of the store, and
only ``commit()`` writes them back, so a use case that returns or raises
before committing leaves the store untouched.
"""

import copy
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from catalog_orders.domain.models import Order, Product, ProductStatus, User
from catalog_orders.domain.exceptions import DuplicateError
from catalog_orders.application.interfaces import (
    MessagePublisher, OrderRepository, OutboxRepository, ProcessedEventRepository,
    ProductRepository, UserRepository
)


class InMemoryStore:
    def __init__(self):
        self.users: dict[str, User] = {}
        self.products: dict[str, Product] = {}
        self.orders: dict[str, Order] = {}
        self.outbox: list[dict] = []
        self.processed_events: dict[str, dict] = {}
        self.commits = 0

    def events(self, event_type: Optional[str] = None) -> list[dict]:
        return [e for e in self.outbox if event_type is None or e["event_type"] == event_type]


class InMemoryUserRepository(UserRepository):
    def __init__(self, users: dict):
        self._users = users

    async def get_by_id(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)


class InMemoryProductRepository(ProductRepository):
    def __init__(self, products: dict):
        self._products = products

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        product = self._products.get(product_id)
        if product is None or product.is_deleted:
            return None
        return product.model_copy(deep=True)

    async def get_by_sku(self, sku: str) -> Optional[Product]:
        for product in self._products.values():
            if product.sku == sku and not product.is_deleted:
                return product.model_copy(deep=True)
        return None

    async def add(self, product: Product) -> None:
        if any(p.sku == product.sku for p in self._products.values()):
            raise DuplicateError("Product", "SKU", product.sku)
        self._products[product.id] = product.model_copy(deep=True)

    async def save(self, product: Product) -> None:
        self._products[product.id] = product.model_copy(deep=True)

    async def list_low_stock(self) -> list[Product]:
        products = [p for p in self._products.values() if p.is_low_stock and not p.is_deleted]
        return sorted(products, key=lambda p: (p.stock_quantity, p.name))

    async def list_active_paged(self, page_number: int, page_size: int) -> tuple[list[Product], int]:
        products = sorted(
            (p for p in self._products.values() if p.status == ProductStatus.ACTIVE and not p.is_deleted),
            key=lambda p: p.name
        )
        start = (page_number - 1) * page_size
        return [p.model_copy(deep=True) for p in products[start:start + page_size]], len(products)

    async def search(self, term="", min_price=None, max_price=None, status=None) -> list[Product]:
        term = (term or "").strip().lower()

        def matches(p: Product) -> bool:
            if p.is_deleted:
                return False
            if term and not any(term in field.lower() for field in (p.name, p.description, p.sku)):
                return False
            if min_price is not None and p.price < min_price:
                return False
            if max_price is not None and p.price > max_price:
                return False
            return status is None or p.status == status

        return sorted((p.model_copy(deep=True) for p in self._products.values() if matches(p)), key=lambda p: p.name)


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, orders: dict):
        self._orders = orders

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        if order is None or order.is_deleted:
            return None
        return order.model_copy(deep=True)

    async def get_by_order_number(self, order_number: str) -> Optional[Order]:
        for order in self._visible():
            if order.order_number == order_number:
                return order.model_copy(deep=True)
        return None

    async def list_by_user(self, user_id: str) -> list[Order]:
        return [o.model_copy(deep=True) for o in self._visible() if o.user_id == user_id]

    async def list_paged(self, page_number: int, page_size: int) -> tuple[list[Order], int]:
        orders = self._visible()
        start = (page_number - 1) * page_size
        return [o.model_copy(deep=True) for o in orders[start:start + page_size]], len(orders)

    async def add(self, order: Order) -> None:
        self._orders[order.id] = order.model_copy(deep=True)

    async def save(self, order: Order) -> None:
        self._orders[order.id] = order.model_copy(deep=True)

    def _visible(self) -> list[Order]:
        orders = [o for o in self._orders.values() if not o.is_deleted]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)


class InMemoryOutboxRepository(OutboxRepository):
    def __init__(self, events: list):
        self._events = events

    async def create(self, event_type: str, event_data: dict, aggregate_id: str) -> str:
        event_id = str(uuid.uuid4())
        self._events.append({
            "id": event_id,
            "event_type": event_type,
            "event_data": event_data,
            "aggregate_id": aggregate_id,
            "status": "pending",
            "created_at": datetime.now(timezone.utc),
        })
        return event_id

    async def get_pending(self, limit: int = 10) -> list[dict]:
        return [dict(e) for e in self._events if e["status"] == "pending"][:limit]

    async def mark_as_published(self, event_id: str) -> None:
        for event in self._events:
            if event["id"] == event_id:
                event["status"] = "published"


class InMemoryProcessedEventRepository(ProcessedEventRepository):
    def __init__(self, processed: dict):
        self._processed = processed

    async def is_processed(self, idempotency_key: str) -> bool:
        return idempotency_key in self._processed

    async def mark_as_processed(self, idempotency_key: str, event_type: str, aggregate_id: str) -> None:
        self._processed[idempotency_key] = {"event_type": event_type, "aggregate_id": aggregate_id}


class _InMemorySession:
    def __init__(self, store: InMemoryStore):
        self._store = store
        self._users = copy.deepcopy(store.users)
        self._products = copy.deepcopy(store.products)
        self._orders = copy.deepcopy(store.orders)
        self._outbox = copy.deepcopy(store.outbox)
        self._processed = copy.deepcopy(store.processed_events)

        self.users = InMemoryUserRepository(self._users)
        self.products = InMemoryProductRepository(self._products)
        self.orders = InMemoryOrderRepository(self._orders)
        self.outbox = InMemoryOutboxRepository(self._outbox)
        self.processed_events = InMemoryProcessedEventRepository(self._processed)

    async def commit(self):
        self._store.users = self._users
        self._store.products = self._products
        self._store.orders = self._orders
        self._store.outbox = self._outbox
        self._store.processed_events = self._processed
        self._store.commits += 1

    async def rollback(self):
        pass


class InMemoryUnitOfWork:
    def __init__(self, store: InMemoryStore):
        self.store = store

    @asynccontextmanager
    async def __call__(self):
        yield _InMemorySession(self.store)


class FakePublisher(MessagePublisher):
    def __init__(self, failing_types: tuple = ()):
        self.published: list[tuple[str, str, dict]] = []
        self.failing_types = failing_types

    async def publish(self, event_type: str, key: str, payload: dict) -> bool:
        if event_type in self.failing_types:
            return False
        self.published.append((event_type, key, payload))
        return True


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def uow(store):
    return InMemoryUnitOfWork(store)


@pytest.fixture
def user(store):
    user = User(id="user-1", user_name="alice", email="alice@example.com")
    store.users[user.id] = user
    return user


@pytest.fixture
def make_product(store):
    """Adds an active product to the store"""
    def _make(name="Widget", price="10.00", stock=10, sku=None, status=ProductStatus.ACTIVE, minimum_stock_level=10):
        product = Product(
            name=name,
            sku=sku or f"SKU-{uuid.uuid4().hex[:6]}",
            price=Decimal(price),
            stock_quantity=stock,
            minimum_stock_level=minimum_stock_level,
            status=status
        )
        store.products[product.id] = product
        return product

    return _make


@pytest.fixture
def make_order(store, user):
    """Adds an order for ``user`` to the store, already moved through ``steps``"""
    def _make(products_and_quantities, steps=()):
        order = Order.create(user_id=user.id, shipping_address="1 Main St", notes=None, created_by="alice")
        for product, quantity in products_and_quantities:
            order.add_item(product.id, product.name, product.effective_price, quantity)
        for step in steps:
            getattr(order, step)("alice")
        store.orders[order.id] = order
        return order

    return _make


@pytest.fixture
def publisher():
    return FakePublisher()
