import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel

from catalog_orders.domain.models import Product, ProductStatus
from catalog_orders.domain.events import ProductUpdated
from catalog_orders.domain.exceptions import DomainException, DuplicateError, NotFoundError
from catalog_orders.application.notifier import OutboxEventNotifier
from catalog_orders.application.result import Result, PagedResult, check_paging

logger = logging.getLogger(__name__)


class StockOperation(str, Enum):
    SET = "set"
    ADD = "add"
    REDUCE = "reduce"


class CreateProductDTO(BaseModel):
    name: str
    description: str = ""
    sku: str
    price: Decimal
    stock_quantity: int = 0
    minimum_stock_level: int = 10


class UpdateProductDTO(BaseModel):
    name: str
    description: str = ""
    price: Decimal


class UpdateStockDTO(BaseModel):
    quantity: int
    operation: StockOperation


class ProductSearchDTO(BaseModel):
    term: str = ""
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    status: Optional[str] = None
    page_number: int = 1
    page_size: int = 20


def apply_stock_operation(product: Product, operation: StockOperation, quantity: int, actor: str) -> None:
    if operation == StockOperation.SET:
        product.update_stock(quantity, actor)
    elif operation == StockOperation.ADD:
        product.add_stock(quantity, actor)
    elif operation == StockOperation.REDUCE:
        product.reduce_stock(quantity, actor)


class CreateProductUseCase:
    def __init__(self, unit_of_work, notifier: OutboxEventNotifier | None = None):
        self._uow = unit_of_work
        self._notifier = notifier or OutboxEventNotifier()

    async def __call__(self, dto: CreateProductDTO, actor: str) -> Result:
        logger.info(f"Creating product {dto.sku}")
        try:
            async with self._uow() as uow:
                if await uow.products.get_by_sku(dto.sku):
                    raise DuplicateError("Product", "SKU", dto.sku)

                product = Product.create(
                    name=dto.name,
                    description=dto.description,
                    sku=dto.sku,
                    price=dto.price,
                    stock_quantity=dto.stock_quantity,
                    created_by=actor,
                    minimum_stock_level=dto.minimum_stock_level
                )
                await uow.products.add(product)
                await uow.commit()

            logger.info(f"Product created: {product.id} ({product.sku})")
            return Result.ok(product, "Product created successfully")

        except DomainException as e:
            logger.warning(f"Product {dto.sku} rejected: {e}")
            return Result.from_exception(e)
        except Exception:
            logger.exception(f"Error creating product {dto.sku}")
            return Result.unexpected("creating the product")


class GetProductUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, product_id: str) -> Result:
        try:
            async with self._uow() as uow:
                product = await uow.products.get_by_id(product_id)
            if not product:
                return Result.not_found("Product not found")
            return Result.ok(product)
        except Exception:
            logger.exception(f"Error getting product {product_id}")
            return Result.unexpected("retrieving the product")


class GetProductBySkuUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, sku: str) -> Result:
        try:
            async with self._uow() as uow:
                product = await uow.products.get_by_sku(sku)
            if not product:
                logger.warning(f"Product with SKU {sku} not found")
                return Result.not_found("Product not found")
            return Result.ok(product)
        except Exception:
            logger.exception(f"Error getting product with SKU {sku}")
            return Result.unexpected("retrieving the product")


class ListProductsUseCase:
    """Active products ordered by name, one page at a time"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, page_number: int = 1, page_size: int = 20) -> Result:
        invalid = check_paging(page_number, page_size)
        if invalid is not None:
            return invalid

        try:
            async with self._uow() as uow:
                products, total_count = await uow.products.list_active_paged(page_number, page_size)
            return Result.ok(PagedResult.of(products, page_number, page_size, total_count))
        except Exception:
            logger.exception("Error getting paged products")
            return Result.unexpected("retrieving products")


class SearchProductsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: ProductSearchDTO) -> Result:
        invalid = check_paging(dto.page_number, dto.page_size)
        if invalid is not None:
            return invalid

        logger.info(f"Searching products for '{dto.term}'")
        try:
            async with self._uow() as uow:
                products = await uow.products.search(
                    dto.term, dto.min_price, dto.max_price, _parse_product_status(dto.status)
                )
            start = (dto.page_number - 1) * dto.page_size
            page = products[start:start + dto.page_size]
            return Result.ok(PagedResult.of(page, dto.page_number, dto.page_size, len(products)))
        except Exception:
            logger.exception("Error searching products")
            return Result.unexpected("searching products")


class ListLowStockProductsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> Result:
        try:
            async with self._uow() as uow:
                products = await uow.products.list_low_stock()
            return Result.ok(products)
        except Exception:
            logger.exception("Error getting low stock products")
            return Result.unexpected("retrieving low stock products")


class _ProductCommand(ABC):
    """Loads a product, applies one change and stages ProductUpdated in the same commit"""
    action = "updating the product"
    success_message = "Product updated successfully"
    publishes_update = True

    def __init__(self, unit_of_work, notifier: OutboxEventNotifier | None = None):
        self._uow = unit_of_work
        self._notifier = notifier or OutboxEventNotifier()

    @abstractmethod
    def apply(self, product: Product, actor: str, *args) -> None:
        pass

    async def __call__(self, product_id: str, actor: str, *args) -> Result:
        try:
            async with self._uow() as uow:
                product = await uow.products.get_by_id(product_id)
                if not product:
                    raise NotFoundError("Product")

                self.apply(product, actor, *args)
                await uow.products.save(product)
                if self.publishes_update:
                    await self._notifier.stage(uow, ProductUpdated.from_product(product))
                await uow.commit()

            logger.info(f"{type(self).__name__} applied to product {product_id}")
            return Result.ok(product, self.success_message)

        except DomainException as e:
            logger.warning(f"{type(self).__name__} rejected for product {product_id}: {e}")
            return Result.from_exception(e)
        except Exception:
            logger.exception(f"Error {self.action} {product_id}")
            return Result.unexpected(self.action)


class UpdateStockUseCase(_ProductCommand):
    action = "updating stock"
    success_message = "Stock updated successfully"

    def apply(self, product: Product, actor: str, dto: UpdateStockDTO) -> None:
        apply_stock_operation(product, dto.operation, dto.quantity, actor)


class ActivateProductUseCase(_ProductCommand):
    action = "activating the product"
    success_message = "Product activated successfully"
    publishes_update = False

    def apply(self, product: Product, actor: str) -> None:
        product.activate(actor)


class DeactivateProductUseCase(_ProductCommand):
    action = "deactivating the product"
    success_message = "Product deactivated successfully"
    publishes_update = False

    def apply(self, product: Product, actor: str) -> None:
        product.deactivate(actor)


class SetDiscountUseCase(_ProductCommand):
    action = "setting the discount"
    success_message = "Discount applied successfully"

    def apply(self, product: Product, actor: str, discount_price: Decimal) -> None:
        product.set_discount(discount_price, actor)


class RemoveDiscountUseCase(_ProductCommand):
    action = "removing the discount"
    success_message = "Discount removed successfully"

    def apply(self, product: Product, actor: str) -> None:
        product.remove_discount(actor)


class DeleteProductUseCase(_ProductCommand):
    action = "deleting the product"
    success_message = "Product deleted successfully"
    publishes_update = False

    def apply(self, product: Product, actor: str) -> None:
        product.soft_delete(actor)


class UpdateProductUseCase(_ProductCommand):
    """Changes name, description and price; existing order lines keep their snapshots"""
    action = "updating the product"
    success_message = "Product updated successfully"

    def apply(self, product: Product, actor: str, dto: UpdateProductDTO) -> None:
        product.update_info(dto.name, dto.description, dto.price, actor)


_PRODUCT_STATUSES = {s.value.lower(): s for s in ProductStatus}


def _parse_product_status(value: Optional[str]) -> Optional[ProductStatus]:
    # An unrecognised status filter is ignored rather than rejected
    return _PRODUCT_STATUSES.get((value or "").strip().lower())
