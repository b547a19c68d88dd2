import asyncio
import logging

from catalog_orders.config import settings, LOG_FORMAT
from catalog_orders.infrastructure.database import AsyncSessionLocal
from catalog_orders.infrastructure.unit_of_work import UnitOfWork
from catalog_orders.application.stock_alert import StockAlertJob

logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


async def stock_alert_worker():
    logger.info("Stock alert worker started")
    job = StockAlertJob(UnitOfWork(AsyncSessionLocal))

    while True:
        try:
            await job()
        except Exception as e:
            logger.error(f"Error in stock alert worker: {e}", exc_info=True)

        await asyncio.sleep(settings.STOCK_ALERT_INTERVAL_SECONDS)


async def main():
    await stock_alert_worker()


if __name__ == "__main__":
    asyncio.run(main())
