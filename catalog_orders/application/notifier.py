import logging

from catalog_orders.domain.events import DomainEvent

logger = logging.getLogger(__name__)


class OutboxEventNotifier:
    """Stages domain events in the outbox of the caller's unit of work.

    Events become visible to the relay only when the surrounding transaction
    commits, so a rolled back order never announces itself.
    """

    async def stage(self, uow, event: DomainEvent) -> str:
        event_id = await uow.outbox.create(
            event_type=event.event_type,
            event_data=event.model_dump(mode="json"),
            aggregate_id=event.aggregate_id
        )
        logger.info(f"Staged {event.event_type} event {event_id} for {event.aggregate_id}")
        return event_id
