import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class StockAlertJob:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> int:
        logger.info(f"Executing stock alert job at {datetime.now(timezone.utc).isoformat()}")

        async with self._uow() as uow:
            products = await uow.products.list_low_stock()

        logger.info(f"Found {len(products)} low stock products")
        for product in products:
            logger.warning(
                f"Low stock alert - Product: {product.name} (SKU: {product.sku}), "
                f"Stock: {product.stock_quantity}, Minimum: {product.minimum_stock_level}"
            )
        return len(products)
