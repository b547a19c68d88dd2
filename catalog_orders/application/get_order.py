import logging

from catalog_orders.application.result import Result, PagedResult, check_paging

logger = logging.getLogger(__name__)


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Result:
        try:
            async with self._uow() as uow:
                order = await uow.orders.get_by_id(order_id)
            if not order:
                return Result.not_found("Order not found")
            return Result.ok(order)
        except Exception:
            logger.exception(f"Error getting order {order_id}")
            return Result.unexpected("retrieving the order")


class GetOrderByNumberUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_number: str) -> Result:
        try:
            async with self._uow() as uow:
                order = await uow.orders.get_by_order_number(order_number)
            if not order:
                return Result.not_found("Order not found")
            return Result.ok(order)
        except Exception:
            logger.exception(f"Error getting order {order_number}")
            return Result.unexpected("retrieving the order")


class ListOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, page_number: int = 1, page_size: int = 20) -> Result:
        invalid = check_paging(page_number, page_size)
        if invalid is not None:
            return invalid

        try:
            async with self._uow() as uow:
                orders, total_count = await uow.orders.list_paged(page_number, page_size)
            return Result.ok(PagedResult.of(orders, page_number, page_size, total_count))
        except Exception:
            logger.exception("Error getting paged orders")
            return Result.unexpected("retrieving orders")


class ListUserOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> Result:
        try:
            async with self._uow() as uow:
                orders = await uow.orders.list_by_user(user_id)
            return Result.ok(orders)
        except Exception:
            logger.exception(f"Error getting orders for user {user_id}")
            return Result.unexpected("retrieving orders")
