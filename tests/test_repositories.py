"""Repository and unit of work tests against an in-memory SQLite database"""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from catalog_orders.domain.models import Order, OrderStatus, Product, ProductStatus, User
from catalog_orders.domain.exceptions import DuplicateError
from catalog_orders.infrastructure.database import create_tables
from catalog_orders.application.interfaces import UnitOfWork as AbstractUnitOfWork
from catalog_orders.infrastructure.unit_of_work import UnitOfWork


@pytest.fixture
async def uow():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_tables(bind=engine)
    yield UnitOfWork(async_sessionmaker(engine, expire_on_commit=False))
    await engine.dispose()


def _product(sku="LAMP-1", stock=5, name="Lamp", price="20.00", status=ProductStatus.ACTIVE):
    return Product(name=name, sku=sku, price=Decimal(price), stock_quantity=stock, status=status)


async def _seed(uow, *products):
    async with uow() as session:
        await session.users.add(User(id="user-1", user_name="alice", email="alice@example.com"))
        for product in products:
            await session.products.add(product)
        await session.commit()


class TestProductRepository:
    async def test_round_trip(self, uow):
        product = _product()
        await _seed(uow, product)

        async with uow() as session:
            loaded = await session.products.get_by_id(product.id)
            by_sku = await session.products.get_by_sku("LAMP-1")

        assert loaded.price == Decimal("20.00")
        assert loaded.status == ProductStatus.ACTIVE
        assert by_sku.id == product.id

    async def test_soft_deleted_product_is_hidden(self, uow):
        product = _product()
        await _seed(uow, product)

        async with uow() as session:
            product.soft_delete("alice")
            await session.products.save(product)
            await session.commit()

        async with uow() as session:
            assert await session.products.get_by_id(product.id) is None
            assert await session.products.get_by_sku("LAMP-1") is None
            assert await session.products.list_low_stock() == []

    async def test_sku_of_deleted_product_is_still_taken(self, uow):
        product = _product()
        await _seed(uow, product)

        async with uow() as session:
            product.soft_delete("alice")
            await session.products.save(product)
            await session.commit()

        with pytest.raises(DuplicateError):
            async with uow() as session:
                await session.products.add(_product())

    async def test_low_stock(self, uow):
        low = _product("LOW-1", stock=2)
        await _seed(uow, low, _product("HIGH-1", stock=50))

        async with uow() as session:
            products = await session.products.list_low_stock()

        assert [p.id for p in products] == [low.id]

    async def test_active_paged_by_name(self, uow):
        await _seed(
            uow,
            _product("P-1", name="Pen"),
            _product("P-2", name="Desk"),
            _product("P-3", name="Lamp"),
            _product("P-4", name="Archived", status=ProductStatus.INACTIVE)
        )

        async with uow() as session:
            first, total = await session.products.list_active_paged(1, 2)
            second, _ = await session.products.list_active_paged(2, 2)

        assert [p.name for p in first] == ["Desk", "Lamp"]
        assert [p.name for p in second] == ["Pen"]
        assert total == 3

    async def test_search(self, uow):
        lamp = _product("LMP-1", name="Desk Lamp", price="30.00")
        bulb = _product("LIGHT-LAMP", name="Bulb", price="4.00")
        await _seed(uow, lamp, bulb, _product("CHR-1", name="Chair", price="80.00"))

        async with uow() as session:
            by_term = await session.products.search("lamp")
            by_price = await session.products.search("", min_price=Decimal("10"), max_price=Decimal("50"))
            by_status = await session.products.search(status=ProductStatus.DRAFT)

        assert [p.id for p in by_term] == [bulb.id, lamp.id]
        assert [p.id for p in by_price] == [lamp.id]
        assert by_status == []


class TestOrderRepository:
    async def _order_with_item(self, uow):
        product = _product()
        await _seed(uow, product)
        order = Order.create(user_id="user-1", shipping_address="1 Main St", notes=None, created_by="alice")
        order.add_item(product.id, product.name, product.effective_price, 2)

        async with uow() as session:
            await session.orders.add(order)
            await session.commit()
        return order, product

    async def test_round_trip_with_items(self, uow):
        order, product = await self._order_with_item(uow)

        async with uow() as session:
            loaded = await session.orders.get_by_order_number(order.order_number)

        assert loaded.id == order.id
        assert loaded.grand_total == Decimal("40.00")
        assert [(i.product_id, i.quantity) for i in loaded.items] == [(product.id, 2)]

    async def test_save_replaces_items(self, uow):
        order, product = await self._order_with_item(uow)

        async with uow() as session:
            loaded = await session.orders.get_by_id(order.id)
            loaded.update_item_quantity(loaded.items[0].id, 5)
            loaded.confirm("bob")
            await session.orders.save(loaded)
            await session.commit()

        async with uow() as session:
            reloaded = await session.orders.get_by_id(order.id)

        assert reloaded.status == OrderStatus.CONFIRMED
        assert reloaded.total_amount == Decimal("100.00")
        assert len(reloaded.items) == 1
        assert reloaded.items[0].quantity == 5

    async def test_deleted_order_is_hidden(self, uow):
        order, _ = await self._order_with_item(uow)

        async with uow() as session:
            order.soft_delete("alice")
            await session.orders.save(order)
            await session.commit()

        async with uow() as session:
            assert await session.orders.get_by_id(order.id) is None
            assert await session.orders.list_by_user("user-1") == []
            orders, total = await session.orders.list_paged(1, 10)

        assert orders == []
        assert total == 0


class TestUnitOfWork:
    async def test_session_implements_the_port(self, uow):
        async with uow() as session:
            assert isinstance(session, AbstractUnitOfWork)
            assert session.products is session.products

    async def test_error_inside_block_discards_changes(self, uow):
        await _seed(uow)

        with pytest.raises(RuntimeError):
            async with uow() as session:
                await session.products.add(_product())
                raise RuntimeError("boom")

        async with uow() as session:
            assert await session.products.get_by_sku("LAMP-1") is None

    async def test_uncommitted_changes_are_discarded(self, uow):
        await _seed(uow)

        async with uow() as session:
            await session.products.add(_product())
            await session.outbox.create("product.updated", {"sku": "LAMP-1"}, "p1")

        async with uow() as session:
            assert await session.products.get_by_sku("LAMP-1") is None
            assert await session.outbox.get_pending() == []

    async def test_outbox_and_processed_events(self, uow):
        async with uow() as session:
            event_id = await session.outbox.create("stock.release", {"order_id": "o1", "items": []}, "o1")
            await session.processed_events.mark_as_processed("stock.release_o1", "stock.release", "o1")
            await session.commit()

        async with uow() as session:
            [pending] = await session.outbox.get_pending()
            assert pending["event_data"] == {"order_id": "o1", "items": []}
            await session.outbox.mark_as_published(event_id)
            assert await session.processed_events.is_processed("stock.release_o1")
            await session.commit()

        async with uow() as session:
            assert await session.outbox.get_pending() == []
