import json
import logging
from aiokafka import AIOKafkaProducer

from catalog_orders.application.interfaces import MessagePublisher

logger = logging.getLogger(__name__)


class KafkaProducerClient(MessagePublisher):
    def __init__(self, bootstrap_servers: str, topics: dict[str, str] | None = None):
        self._bootstrap_servers = bootstrap_servers
        self._topics = topics or {}
        self._producer: AIOKafkaProducer | None = None

    async def start(self):
        if not self._producer:
            self._producer = AIOKafkaProducer(
                bootstrap_servers=self._bootstrap_servers,
                acks="all",
                enable_idempotence=True
            )
            await self._producer.start()
            logger.info("Kafka producer started")

    async def stop(self):
        if self._producer:
            await self._producer.stop()
            self._producer = None
            logger.info("Kafka producer stopped")

    async def publish(self, event_type: str, key: str, payload: dict) -> bool:
        if not self._producer:
            logger.error("Kafka producer not started")
            return False

        topic = self._topics.get(event_type, event_type)
        try:
            await self._producer.send_and_wait(
                topic=topic,
                key=key.encode(),
                value=json.dumps(payload).encode(),
                headers=[("event_type", event_type.encode())]
            )
            logger.info(f"Published {event_type} to {topic} for {key}")
            return True

        except Exception as e:
            logger.error(f"Failed to publish {event_type} for {key}: {e}")
            return False
