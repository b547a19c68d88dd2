import logging

from catalog_orders.application.result import Result

logger = logging.getLogger(__name__)


class DeleteOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, actor: str) -> Result:
        logger.info(f"Deleting order {order_id}")
        try:
            async with self._uow() as uow:
                order = await uow.orders.get_by_id(order_id)
                if not order:
                    return Result.not_found("Order not found")

                if not order.can_be_deleted():
                    return Result.fail("Only pending or cancelled orders can be deleted")

                order.soft_delete(actor)
                await uow.orders.save(order)
                await uow.commit()

            logger.info(f"Order {order_id} deleted")
            return Result.ok(True, "Order deleted successfully")
        except Exception:
            logger.exception(f"Error deleting order {order_id}")
            return Result.unexpected("deleting the order")
