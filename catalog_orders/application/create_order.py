import logging
from pydantic import BaseModel

from catalog_orders.domain.models import Order
from catalog_orders.domain.events import OrderCreated
from catalog_orders.domain.exceptions import DomainException
from catalog_orders.application.notifier import OutboxEventNotifier
from catalog_orders.application.result import Result


logger = logging.getLogger(__name__)


class OrderItemDTO(BaseModel):
    product_id: str
    quantity: int


class CreateOrderDTO(BaseModel):
    user_id: str
    shipping_address: str
    notes: str | None = None
    items: list[OrderItemDTO]


class CreateOrderUseCase:
    def __init__(self, unit_of_work, notifier: OutboxEventNotifier | None = None):
        self._uow = unit_of_work
        self._notifier = notifier or OutboxEventNotifier()

    async def __call__(self, order_data: CreateOrderDTO, actor: str) -> Result:
        logger.info(f"Creating order for user {order_data.user_id}")
        try:
            async with self._uow() as uow:
                user = await uow.users.get_by_id(order_data.user_id)
                if not user:
                    return Result.not_found("User not found")

                order = Order.create(
                    user_id=order_data.user_id,
                    shipping_address=order_data.shipping_address,
                    notes=order_data.notes,
                    created_by=actor
                )

                # Availability is checked here but nothing is reserved until payment
                for requested in order_data.items:
                    product = await uow.products.get_by_id(requested.product_id)
                    if not product:
                        return Result.not_found(f"Product with ID {requested.product_id} not found")
                    if not product.is_in_stock:
                        return Result.fail(f"Product '{product.name}' is out of stock")
                    if product.stock_quantity < requested.quantity:
                        return Result.fail(f"Insufficient stock for product '{product.name}'")

                    order.add_item(product.id, product.name, product.effective_price, requested.quantity)

                await uow.orders.add(order)
                await self._notifier.stage(uow, OrderCreated.from_order(order))
                await uow.commit()

            logger.info(f"Order created: {order.order_number}")
            return Result.ok(order, "Order created successfully")

        except DomainException as e:
            logger.warning(f"Order for user {order_data.user_id} rejected: {e}")
            return Result.from_exception(e)
        except Exception:
            logger.exception(f"Error creating order for user {order_data.user_id}")
            return Result.unexpected("creating the order")
