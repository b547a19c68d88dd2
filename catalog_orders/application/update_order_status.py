import logging
from pydantic import BaseModel

from catalog_orders.domain.models import OrderStatus
from catalog_orders.domain.events import StockReservation, StockRelease
from catalog_orders.domain.exceptions import DomainException
from catalog_orders.application.notifier import OutboxEventNotifier
from catalog_orders.application.result import ErrorType, Result

logger = logging.getLogger(__name__)


class UpdateOrderStatusDTO(BaseModel):
    status: str
    reason: str | None = None


class UpdateOrderStatusUseCase:
    """Moves an order through its state machine.

    Paying stages a StockReservation so the stock consumer deducts the
    ordered quantities; cancelling stages a StockRelease to restore them.
    """

    def __init__(self, unit_of_work, notifier: OutboxEventNotifier | None = None):
        self._uow = unit_of_work
        self._notifier = notifier or OutboxEventNotifier()

    async def __call__(self, order_id: str, dto: UpdateOrderStatusDTO, actor: str) -> Result:
        logger.info(f"Updating order {order_id} status to {dto.status}")
        try:
            target = _parse_status(dto.status)
            if target is None:
                return Result.fail("Invalid status", error_type=ErrorType.VALIDATION)

            async with self._uow() as uow:
                order = await uow.orders.get_by_id(order_id)
                if not order:
                    return Result.not_found("Order not found")

                if target == OrderStatus.CONFIRMED:
                    order.confirm(actor)
                elif target == OrderStatus.PAID:
                    order.pay(actor)
                    await self._notifier.stage(uow, StockReservation.from_order(order))
                elif target == OrderStatus.SHIPPED:
                    order.ship(actor)
                elif target == OrderStatus.DELIVERED:
                    order.deliver(actor)
                elif target == OrderStatus.CANCELLED:
                    order.cancel(actor, dto.reason)
                    await self._notifier.stage(uow, StockRelease.from_order(order))

                await uow.orders.save(order)
                await uow.commit()

            logger.info(f"Order {order.order_number} is now {order.status.value}")
            return Result.ok(order, "Order status updated successfully")

        except DomainException as e:
            logger.warning(f"Invalid status change for order {order_id}: {e}")
            return Result.from_exception(e)
        except Exception:
            logger.exception(f"Error updating status of order {order_id}")
            return Result.unexpected("updating order status")


_TRANSITION_TARGETS = {
    "confirmed": OrderStatus.CONFIRMED,
    "paid": OrderStatus.PAID,
    "shipped": OrderStatus.SHIPPED,
    "delivered": OrderStatus.DELIVERED,
    "cancelled": OrderStatus.CANCELLED,
}


def _parse_status(value: str) -> OrderStatus | None:
    return _TRANSITION_TARGETS.get((value or "").strip().lower())
