import logging

from catalog_orders.domain.events import ProductUpdated, StockEvent, StockReservation, StockRelease
from catalog_orders.domain.exceptions import NotFoundError
from catalog_orders.application.notifier import OutboxEventNotifier
from catalog_orders.application.products import StockOperation, apply_stock_operation

logger = logging.getLogger(__name__)


class ProcessStockEventUseCase:
    """Applies one stock reservation or release message to the product ledger.

    Every item of the message is applied in a single unit of work; any
    exception propagates so the consumer can redeliver the message. The
    processed-event ledger makes a redelivered message a no-op once it has
    been committed.
    """

    def __init__(self, unit_of_work, event_cls: type[StockEvent], notifier: OutboxEventNotifier | None = None):
        self._uow = unit_of_work
        self._event_cls = event_cls
        self._notifier = notifier or OutboxEventNotifier()

        if event_cls is StockReservation:
            self._operation = StockOperation.REDUCE
            self._actor = "System-StockReservation"
        elif event_cls is StockRelease:
            self._operation = StockOperation.ADD
            self._actor = "System-StockRelease"
        else:
            raise ValueError(f"Unsupported stock event: {event_cls.__name__}")

    async def __call__(self, payload: dict) -> bool:
        """Returns False when the event had already been applied"""
        event = self._event_cls.model_validate(payload)
        logger.info(f"Received {event.event_type} for order {event.order_id}")

        async with self._uow() as uow:
            if await uow.processed_events.is_processed(event.idempotency_key):
                logger.info(f"Event {event.idempotency_key} already processed")
                return False

            for item in event.items:
                product = await uow.products.get_by_id(item.product_id)
                if not product:
                    raise NotFoundError("Product", item.product_id)

                apply_stock_operation(product, self._operation, item.quantity, self._actor)
                await uow.products.save(product)
                await self._notifier.stage(uow, ProductUpdated.from_product(product))

            await uow.processed_events.mark_as_processed(
                event.idempotency_key, event.event_type, event.order_id
            )
            await uow.commit()

        logger.info(f"{event.event_type} processed for order {event.order_id}")
        return True
