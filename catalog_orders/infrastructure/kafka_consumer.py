import json
import logging
import asyncio
from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.errors import KafkaError
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class KafkaConsumerClient:
    """Single-topic consumer that handles one message at a time.

    The offset is committed only after the callback returns. When the
    callback raises, the consumer seeks back to the same offset and the
    message is delivered again after an exponential backoff capped at
    ``max_retry_delay``. Only messages that can never be processed
    (undecodable JSON, a payload that fails validation) are logged and
    skipped.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        topic: str,
        group_id: str,
        retry_delay: float = 1.0,
        max_retry_delay: float = 30.0
    ):
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._group_id = group_id
        self._retry_delay = retry_delay
        self._max_retry_delay = max_retry_delay
        self._consumer: AIOKafkaConsumer | None = None
        self._attempts: dict[tuple, int] = {}
        self._running = False

    async def start(self):
        self._consumer = AIOKafkaConsumer(
            self._topic,
            bootstrap_servers=self._bootstrap_servers,
            group_id=self._group_id,
            enable_auto_commit=False,
            auto_offset_reset="earliest",
            max_poll_records=1
        )
        await self._consumer.start()
        self._running = True
        logger.info(f"Kafka consumer started for {self._topic}")

    async def stop(self):
        self._running = False
        if self._consumer:
            await self._consumer.stop()
            self._consumer = None
            logger.info(f"Kafka consumer stopped for {self._topic}")

    async def consume(self, callback):
        """Processes messages until stopped"""
        while self._running:
            try:
                msg = await self._consumer.getone()
                await self.handle_message(msg, callback)
            except Exception as e:
                logger.error(f"Consumer error on {self._topic}: {e}", exc_info=True)
                await asyncio.sleep(self._retry_delay)

    async def handle_message(self, msg, callback) -> bool:
        """Returns True when the message was acknowledged"""
        tp = TopicPartition(msg.topic, msg.partition)
        delivery = (msg.topic, msg.partition, msg.offset)

        try:
            payload = json.loads(msg.value.decode())
        except ValueError as e:
            logger.error(f"Skipping undecodable message {msg.topic} offset {msg.offset}: {e}")
            return await self._commit(tp, msg)

        try:
            await callback(payload)
        except ValidationError as e:
            self._attempts.pop(delivery, None)
            logger.error(f"Skipping invalid payload {msg.topic} offset {msg.offset}: {e}")
            return await self._commit(tp, msg)
        except Exception as e:
            attempts = self._attempts.get(delivery, 0) + 1
            self._attempts[delivery] = attempts
            delay = self.backoff(attempts)
            logger.error(
                f"Error processing {msg.topic} offset {msg.offset} "
                f"(attempt {attempts}, retrying in {delay:.1f}s): {e}", exc_info=True
            )
            self._consumer.seek(tp, msg.offset)
            await asyncio.sleep(delay)
            return False

        self._attempts.pop(delivery, None)
        return await self._commit(tp, msg)

    def backoff(self, attempts: int) -> float:
        return min(self._retry_delay * 2 ** (attempts - 1), self._max_retry_delay)

    async def _commit(self, tp: TopicPartition, msg) -> bool:
        try:
            await self._consumer.commit({tp: msg.offset + 1})
            return True
        except KafkaError as e:
            # The offset stays uncommitted, so the message comes back and the processed-event ledger absorbs it
            logger.error(f"Could not commit {msg.topic} offset {msg.offset}: {e}")
            return False
