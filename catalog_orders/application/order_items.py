import logging
from pydantic import BaseModel

from catalog_orders.domain.exceptions import DomainException
from catalog_orders.application.result import Result

logger = logging.getLogger(__name__)


class AddOrderItemDTO(BaseModel):
    product_id: str
    quantity: int


class UpdateOrderItemQuantityDTO(BaseModel):
    order_item_id: str
    quantity: int


class AddOrderItemUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, dto: AddOrderItemDTO, actor: str) -> Result:
        logger.info(f"Adding product {dto.product_id} to order {order_id}")
        try:
            async with self._uow() as uow:
                order = await uow.orders.get_by_id(order_id)
                if not order:
                    return Result.not_found("Order not found")

                product = await uow.products.get_by_id(dto.product_id)
                if not product:
                    return Result.not_found("Product not found")

                order.add_item(product.id, product.name, product.effective_price, dto.quantity, actor=actor)
                await uow.orders.save(order)
                await uow.commit()

            return Result.ok(order, "Order item added successfully")

        except DomainException as e:
            logger.warning(f"Cannot add item to order {order_id}: {e}")
            return Result.from_exception(e)
        except Exception:
            logger.exception(f"Error adding item to order {order_id}")
            return Result.unexpected("adding order item")


class UpdateOrderItemQuantityUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, dto: UpdateOrderItemQuantityDTO, actor: str) -> Result:
        logger.info(f"Updating item {dto.order_item_id} of order {order_id}")
        try:
            async with self._uow() as uow:
                order = await uow.orders.get_by_id(order_id)
                if not order:
                    return Result.not_found("Order not found")

                order.update_item_quantity(dto.order_item_id, dto.quantity, actor=actor)
                await uow.orders.save(order)
                await uow.commit()

            return Result.ok(order, "Order item updated successfully")

        except DomainException as e:
            logger.warning(f"Cannot update item of order {order_id}: {e}")
            return Result.from_exception(e)
        except Exception:
            logger.exception(f"Error updating item of order {order_id}")
            return Result.unexpected("updating order item")
