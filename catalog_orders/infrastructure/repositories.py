import uuid
from collections import defaultdict
from typing import Optional, List, Tuple
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import select, insert, update, delete, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_orders.domain.models import Order, OrderItem, OrderStatus, Product, ProductStatus, User
from catalog_orders.domain.exceptions import DuplicateError
from catalog_orders.infrastructure.db_schema import (
    users_tbl, products_tbl, orders_tbl, order_items_tbl, outbox_events_tbl, processed_events_tbl
)
from catalog_orders.application.interfaces import (
    UserRepository, ProductRepository, OrderRepository, OutboxRepository, ProcessedEventRepository
)


def _not_deleted(table):
    """Soft-deleted rows are invisible to every read path"""
    return table.c.deleted_at.is_(None)


def _audit_values(entity) -> dict:
    return dict(
        created_at=entity.created_at,
        created_by=entity.created_by,
        updated_at=entity.updated_at,
        updated_by=entity.updated_by,
        deleted_at=entity.deleted_at,
        deleted_by=entity.deleted_by
    )


def _audit_fields(row) -> dict:
    return dict(
        created_at=row.created_at,
        created_by=row.created_by,
        updated_at=row.updated_at,
        updated_by=row.updated_by,
        deleted_at=row.deleted_at,
        deleted_by=row.deleted_by
    )


class SQLAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self._session.execute(
            select(users_tbl).where(users_tbl.c.id == user_id, _not_deleted(users_tbl))
        )
        row = result.fetchone()
        if not row:
            return None
        return User(id=row.id, user_name=row.user_name, email=row.email, is_active=row.is_active)

    async def add(self, user: User) -> None:
        await self._session.execute(
            insert(users_tbl).values(
                id=user.id, user_name=user.user_name, email=user.email, is_active=user.is_active
            )
        )


class SQLAlchemyProductRepository(ProductRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.id == product_id, _not_deleted(products_tbl))
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_sku(self, sku: str) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.sku == sku, _not_deleted(products_tbl))
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def add(self, product: Product) -> None:
        try:
            await self._session.execute(insert(products_tbl).values(**self._values(product)))
        except IntegrityError:
            # SKU of a soft-deleted product is still taken
            raise DuplicateError("Product", "SKU", product.sku)

    async def save(self, product: Product) -> None:
        values = self._values(product)
        del values["id"]
        await self._session.execute(
            update(products_tbl).where(products_tbl.c.id == product.id).values(**values)
        )

    async def list_low_stock(self) -> List[Product]:
        result = await self._session.execute(
            select(products_tbl)
            .where(
                products_tbl.c.stock_quantity <= products_tbl.c.minimum_stock_level,
                _not_deleted(products_tbl)
            )
            .order_by(products_tbl.c.stock_quantity.asc(), products_tbl.c.name.asc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def list_active_paged(self, page_number: int, page_size: int) -> Tuple[List[Product], int]:
        active = (products_tbl.c.status == ProductStatus.ACTIVE, _not_deleted(products_tbl))
        total = await self._session.scalar(
            select(func.count()).select_from(products_tbl).where(*active)
        )
        result = await self._session.execute(
            select(products_tbl)
            .where(*active)
            .order_by(products_tbl.c.name.asc())
            .offset((page_number - 1) * page_size)
            .limit(page_size)
        )
        return [self._to_domain(row) for row in result.fetchall()], total or 0

    async def search(
        self,
        term: str = "",
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        status: Optional[ProductStatus] = None
    ) -> List[Product]:
        query = select(products_tbl).where(_not_deleted(products_tbl))
        if term and term.strip():
            pattern = f"%{term.strip()}%"
            query = query.where(or_(
                products_tbl.c.name.ilike(pattern),
                products_tbl.c.description.ilike(pattern),
                products_tbl.c.sku.ilike(pattern)
            ))
        if min_price is not None:
            query = query.where(products_tbl.c.price >= min_price)
        if max_price is not None:
            query = query.where(products_tbl.c.price <= max_price)
        if status is not None:
            query = query.where(products_tbl.c.status == status)

        result = await self._session.execute(query.order_by(products_tbl.c.name.asc()))
        return [self._to_domain(row) for row in result.fetchall()]

    def _values(self, product: Product) -> dict:
        return dict(
            id=product.id,
            name=product.name,
            description=product.description,
            sku=product.sku,
            price=product.price,
            discount_price=product.discount_price,
            stock_quantity=product.stock_quantity,
            minimum_stock_level=product.minimum_stock_level,
            status=product.status,
            **_audit_values(product)
        )

    def _to_domain(self, row) -> Product:
        """DB -> Domain"""
        return Product(
            id=row.id,
            name=row.name,
            description=row.description,
            sku=row.sku,
            price=row.price,
            discount_price=row.discount_price,
            stock_quantity=row.stock_quantity,
            minimum_stock_level=row.minimum_stock_level,
            status=ProductStatus(row.status),
            **_audit_fields(row)
        )


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        return await self._get_one(orders_tbl.c.id == order_id)

    async def get_by_order_number(self, order_number: str) -> Optional[Order]:
        return await self._get_one(orders_tbl.c.order_number == order_number)

    async def list_by_user(self, user_id: str) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl)
            .where(orders_tbl.c.user_id == user_id, _not_deleted(orders_tbl))
            .order_by(orders_tbl.c.created_at.desc())
        )
        return await self._with_items(result.fetchall())

    async def list_paged(self, page_number: int, page_size: int) -> Tuple[List[Order], int]:
        total = await self._session.scalar(
            select(func.count()).select_from(orders_tbl).where(_not_deleted(orders_tbl))
        )
        result = await self._session.execute(
            select(orders_tbl)
            .where(_not_deleted(orders_tbl))
            .order_by(orders_tbl.c.created_at.desc())
            .offset((page_number - 1) * page_size)
            .limit(page_size)
        )
        return await self._with_items(result.fetchall()), total or 0

    async def add(self, order: Order) -> None:
        await self._session.execute(insert(orders_tbl).values(**self._values(order)))
        await self._insert_items(order)

    async def save(self, order: Order) -> None:
        values = self._values(order)
        del values["id"]
        await self._session.execute(
            update(orders_tbl).where(orders_tbl.c.id == order.id).values(**values)
        )
        # Items are owned by the order: replace the stored set with the current one
        await self._session.execute(
            delete(order_items_tbl).where(order_items_tbl.c.order_id == order.id)
        )
        await self._insert_items(order)

    async def _get_one(self, condition) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(condition, _not_deleted(orders_tbl))
        )
        row = result.fetchone()
        if not row:
            return None
        orders = await self._with_items([row])
        return orders[0]

    async def _with_items(self, rows) -> List[Order]:
        if not rows:
            return []
        result = await self._session.execute(
            select(order_items_tbl)
            .where(order_items_tbl.c.order_id.in_([row.id for row in rows]), _not_deleted(order_items_tbl))
            .order_by(order_items_tbl.c.created_at.asc())
        )
        items = defaultdict(list)
        for item_row in result.fetchall():
            items[item_row.order_id].append(self._item_to_domain(item_row))
        return [self._to_domain(row, items[row.id]) for row in rows]

    async def _insert_items(self, order: Order) -> None:
        if not order.items:
            return
        await self._session.execute(
            insert(order_items_tbl),
            [
                dict(
                    id=item.id,
                    order_id=order.id,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                    total_price=item.total_price,
                    **_audit_values(item)
                )
                for item in order.items
            ]
        )

    def _values(self, order: Order) -> dict:
        return dict(
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
            **_audit_values(order)
        )

    def _item_to_domain(self, row) -> OrderItem:
        return OrderItem(
            id=row.id,
            order_id=row.order_id,
            product_id=row.product_id,
            product_name=row.product_name,
            unit_price=row.unit_price,
            quantity=row.quantity,
            total_price=row.total_price,
            **_audit_fields(row)
        )

    def _to_domain(self, row, items: List[OrderItem]) -> Order:
        """DB -> Domain"""
        return Order(
            id=row.id,
            order_number=row.order_number,
            user_id=row.user_id,
            status=OrderStatus(row.status),
            items=items,
            total_amount=row.total_amount,
            shipping_fee=row.shipping_fee,
            total_discount=row.total_discount,
            grand_total=row.grand_total,
            shipping_address=row.shipping_address,
            notes=row.notes,
            payment_date=row.payment_date,
            shipping_date=row.shipping_date,
            delivery_date=row.delivery_date,
            cancel_date=row.cancel_date,
            **_audit_fields(row)
        )


class SQLAlchemyOutboxRepository(OutboxRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, event_type: str, event_data: dict, aggregate_id: str) -> str:
        event_id = str(uuid.uuid4())
        stmt = insert(outbox_events_tbl).values(
            id=event_id,
            event_type=event_type,
            event_data=event_data,
            aggregate_id=aggregate_id,
            status="pending",
            created_at=datetime.now(timezone.utc)
        )
        await self._session.execute(stmt)
        return event_id

    async def get_pending(self, limit: int = 10) -> List[dict]:
        result = await self._session.execute(
            select(outbox_events_tbl)
            .where(outbox_events_tbl.c.status == "pending")
            .order_by(outbox_events_tbl.c.created_at.asc())
            .limit(limit)
        )
        rows = result.fetchall()

        return [
            {
                "id": row.id,
                "event_type": row.event_type,
                "event_data": row.event_data,
                "aggregate_id": row.aggregate_id
            }
            for row in rows
        ]

    async def mark_as_published(self, event_id: str) -> None:
        stmt = (
            update(outbox_events_tbl)
            .where(outbox_events_tbl.c.id == event_id)
            .values(status="published", published_at=datetime.now(timezone.utc))
        )
        await self._session.execute(stmt)


class SQLAlchemyProcessedEventRepository(ProcessedEventRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def is_processed(self, idempotency_key: str) -> bool:
        result = await self._session.execute(
            select(processed_events_tbl.c.idempotency_key)
            .where(processed_events_tbl.c.idempotency_key == idempotency_key)
        )
        return result.fetchone() is not None

    async def mark_as_processed(self, idempotency_key: str, event_type: str, aggregate_id: str) -> None:
        await self._session.execute(
            insert(processed_events_tbl).values(
                idempotency_key=idempotency_key,
                event_type=event_type,
                aggregate_id=aggregate_id,
                processed_at=datetime.now(timezone.utc)
            )
        )
