from typing import ClassVar

import pytest

from catalog_orders.domain.models import ProductStatus
from catalog_orders.domain.events import DomainEvent, StockReservation, StockRelease, ProductUpdated
from catalog_orders.domain.exceptions import InsufficientStockError, NotFoundError
from catalog_orders.application.process_stock_event import ProcessStockEventUseCase


def _payload(order_id, *items):
    return {"order_id": order_id, "items": [{"product_id": p, "quantity": q} for p, q in items]}


class TestStockReservation:
    async def test_reduces_stock(self, uow, store, make_product):
        pen = make_product("Pen", stock=10)
        pad = make_product("Pad", stock=3)

        applied = await ProcessStockEventUseCase(uow, StockReservation)(_payload("order-1", (pen.id, 4), (pad.id, 3)))

        assert applied is True
        assert store.products[pen.id].stock_quantity == 6
        assert store.products[pad.id].stock_quantity == 0
        assert store.products[pad.id].status == ProductStatus.OUT_OF_STOCK
        assert store.products[pen.id].updated_by == "System-StockReservation"
        assert "stock.reservation_order-1" in store.processed_events
        assert len(store.events("product.updated")) == 2

    async def test_redelivery_is_ignored(self, uow, store, make_product):
        pen = make_product("Pen", stock=10)
        use_case = ProcessStockEventUseCase(uow, StockReservation)
        payload = _payload("order-1", (pen.id, 4))

        assert await use_case(payload) is True
        assert await use_case(payload) is False

        assert store.products[pen.id].stock_quantity == 6
        assert len(store.events("product.updated")) == 1

    async def test_failure_applies_nothing(self, uow, store, make_product):
        pen = make_product("Pen", stock=10)
        pad = make_product("Pad", stock=1)

        with pytest.raises(InsufficientStockError):
            await ProcessStockEventUseCase(uow, StockReservation)(_payload("order-1", (pen.id, 4), (pad.id, 2)))

        assert store.products[pen.id].stock_quantity == 10
        assert store.processed_events == {}
        assert store.outbox == []

    async def test_unknown_product_raises(self, uow, store):
        with pytest.raises(NotFoundError):
            await ProcessStockEventUseCase(uow, StockReservation)(_payload("order-1", ("missing", 1)))
        assert store.commits == 0


class TestStockRelease:
    async def test_restores_stock(self, uow, store, make_product):
        pen = make_product("Pen", stock=0, status=ProductStatus.OUT_OF_STOCK)

        await ProcessStockEventUseCase(uow, StockRelease)(_payload("order-1", (pen.id, 2)))

        assert store.products[pen.id].stock_quantity == 2
        assert store.products[pen.id].status == ProductStatus.ACTIVE
        assert store.products[pen.id].updated_by == "System-StockRelease"

    async def test_release_and_reservation_are_tracked_separately(self, uow, store, make_product):
        pen = make_product("Pen", stock=10)

        await ProcessStockEventUseCase(uow, StockReservation)(_payload("order-1", (pen.id, 4)))
        await ProcessStockEventUseCase(uow, StockRelease)(_payload("order-1", (pen.id, 4)))

        assert store.products[pen.id].stock_quantity == 10
        assert set(store.processed_events) == {"stock.reservation_order-1", "stock.release_order-1"}


def test_rejects_other_events(uow):
    with pytest.raises(ValueError):
        ProcessStockEventUseCase(uow, ProductUpdated)


class TestDomainEventBase:
    def test_event_without_aggregate_cannot_be_built(self):
        class Nameless(DomainEvent):
            event_type: ClassVar[str] = "nameless"

        with pytest.raises(TypeError):
            Nameless()

    def test_stock_events_are_keyed_by_order(self):
        event = StockRelease(order_id="order-1", items=[])

        assert event.aggregate_id == "order-1"
        assert event.idempotency_key == "stock.release_order-1"
