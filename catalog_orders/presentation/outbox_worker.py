import asyncio
import logging

from catalog_orders.config import settings, LOG_FORMAT
from catalog_orders.infrastructure.database import AsyncSessionLocal
from catalog_orders.infrastructure.unit_of_work import UnitOfWork
from catalog_orders.infrastructure.kafka_producer import KafkaProducerClient
from catalog_orders.application.process_outbox import ProcessOutboxEventsUseCase

logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

kafka_producer = KafkaProducerClient(settings.KAFKA_BOOTSTRAP_SERVERS, settings.TOPICS)


async def outbox_worker():
    """Relays committed outbox events to Kafka"""
    logger.info("Outbox worker started")
    await kafka_producer.start()

    try:
        while True:
            try:
                use_case = ProcessOutboxEventsUseCase(
                    unit_of_work=UnitOfWork(AsyncSessionLocal),
                    publisher=kafka_producer
                )
                published = await use_case(limit=settings.OUTBOX_BATCH_SIZE)
                if published:
                    logger.info(f"Published {published} outbox events")

                await asyncio.sleep(settings.OUTBOX_POLL_INTERVAL_SECONDS)

            except Exception as e:
                logger.error(f"Error in outbox worker: {e}", exc_info=True)
                await asyncio.sleep(settings.OUTBOX_POLL_INTERVAL_SECONDS * 3)
    finally:
        await kafka_producer.stop()


async def main():
    await outbox_worker()


if __name__ == "__main__":
    asyncio.run(main())
