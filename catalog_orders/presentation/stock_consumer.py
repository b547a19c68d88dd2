import asyncio
import logging

from catalog_orders.config import settings, LOG_FORMAT
from catalog_orders.domain.events import StockEvent, StockReservation, StockRelease
from catalog_orders.infrastructure.database import AsyncSessionLocal
from catalog_orders.infrastructure.unit_of_work import UnitOfWork
from catalog_orders.infrastructure.kafka_consumer import KafkaConsumerClient
from catalog_orders.application.process_stock_event import ProcessStockEventUseCase

logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


async def consume_stock_events(topic: str, event_cls: type[StockEvent]):
    consumer = KafkaConsumerClient(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        topic=topic,
        group_id=settings.KAFKA_CONSUMER_GROUP,
        retry_delay=settings.STOCK_EVENT_RETRY_DELAY_SECONDS,
        max_retry_delay=settings.STOCK_EVENT_MAX_RETRY_DELAY_SECONDS
    )
    use_case = ProcessStockEventUseCase(UnitOfWork(AsyncSessionLocal), event_cls)

    await consumer.start()
    try:
        await consumer.consume(use_case)
    finally:
        await consumer.stop()


async def main():
    logger.info("Stock consumer started")
    await asyncio.gather(
        consume_stock_events(settings.STOCK_RESERVATION_TOPIC, StockReservation),
        consume_stock_events(settings.STOCK_RELEASE_TOPIC, StockRelease)
    )


if __name__ == "__main__":
    asyncio.run(main())
