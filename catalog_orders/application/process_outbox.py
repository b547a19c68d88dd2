import logging
import json

from catalog_orders.application.interfaces import MessagePublisher

logger = logging.getLogger(__name__)


class ProcessOutboxEventsUseCase:
    def __init__(self, unit_of_work, publisher: MessagePublisher):
        self._uow = unit_of_work
        self._publisher = publisher

    async def __call__(self, limit: int = 10) -> int:
        """Publishes pending outbox events oldest first. Returns the number published."""
        published = 0

        async with self._uow() as uow:
            pending = await uow.outbox.get_pending(limit=limit)

            for event in pending:
                try:
                    event_data = event["event_data"]
                    if isinstance(event_data, str):
                        event_data = json.loads(event_data)

                    success = await self._publisher.publish(
                        event_type=event["event_type"],
                        key=event["aggregate_id"],
                        payload=event_data
                    )
                    if success:
                        await uow.outbox.mark_as_published(event["id"])
                        published += 1
                        logger.info(f"Published {event['event_type']} event {event['id']}")
                    else:
                        logger.warning(f"Event {event['id']} not published, will retry")
                except Exception:
                    logger.exception(f"Error processing outbox event {event['id']}")

            await uow.commit()

        return published
