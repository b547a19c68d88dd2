from fastapi import APIRouter, Depends, Header, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from decimal import Decimal
from typing import Optional

from catalog_orders.presentation.schemas import (
    ApiResponse, CreateOrderRequest, CreateProductRequest, OrderItemRequest, OrderResponse,
    OrderSummaryResponse, ProductResponse, SetDiscountRequest, UpdateOrderItemQuantityRequest,
    UpdateOrderStatusRequest, UpdateProductRequest, UpdateStockRequest
)
from catalog_orders.application.result import ErrorType, Result
from catalog_orders.application.create_order import CreateOrderUseCase, CreateOrderDTO, OrderItemDTO
from catalog_orders.application.get_order import (
    GetOrderUseCase, GetOrderByNumberUseCase, ListOrdersUseCase, ListUserOrdersUseCase
)
from catalog_orders.application.update_order_status import UpdateOrderStatusUseCase, UpdateOrderStatusDTO
from catalog_orders.application.order_items import (
    AddOrderItemUseCase, AddOrderItemDTO, UpdateOrderItemQuantityUseCase, UpdateOrderItemQuantityDTO
)
from catalog_orders.application.delete_order import DeleteOrderUseCase
from catalog_orders.application.products import (
    ActivateProductUseCase, CreateProductDTO, CreateProductUseCase, DeactivateProductUseCase,
    DeleteProductUseCase, GetProductBySkuUseCase, GetProductUseCase, ListLowStockProductsUseCase,
    ListProductsUseCase, ProductSearchDTO, RemoveDiscountUseCase, SearchProductsUseCase, SetDiscountUseCase,
    UpdateProductDTO, UpdateProductUseCase, UpdateStockDTO, UpdateStockUseCase
)
from catalog_orders.infrastructure.database import AsyncSessionLocal
from catalog_orders.infrastructure.unit_of_work import UnitOfWork

router = APIRouter()

STATUS_BY_ERROR = {
    ErrorType.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorType.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorType.BUSINESS_RULE: status.HTTP_400_BAD_REQUEST,
    ErrorType.DUPLICATE: status.HTTP_409_CONFLICT,
    ErrorType.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_unit_of_work():
    return UnitOfWork(AsyncSessionLocal)


def get_actor(x_user_name: Optional[str] = Header(default=None)) -> str:
    """User name forwarded by the authenticating gateway"""
    return x_user_name or "Unknown"


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id


def envelope(result: Result, to_response=None, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if not result.success:
        body = ApiResponse(success=False, message=result.message, errors=result.errors)
        return JSONResponse(
            status_code=STATUS_BY_ERROR.get(result.error_type, status.HTTP_400_BAD_REQUEST),
            content=jsonable_encoder(body)
        )
    data = to_response(result.data) if to_response else result.data
    body = ApiResponse(success=True, data=data, message=result.message)
    return JSONResponse(status_code=success_status, content=jsonable_encoder(body))


def _many(converter):
    return lambda items: [converter(item) for item in items]


def _page(converter):
    return lambda page: {
        "items": [converter(item) for item in page.items],
        "page_number": page.page_number,
        "page_size": page.page_size,
        "total_count": page.total_count,
        "total_pages": page.total_pages,
    }


# Orders

@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    uow=Depends(get_unit_of_work),
    actor: str = Depends(get_actor),
    current_user_id: Optional[str] = Depends(get_current_user_id)
):
    """Create an order for the authenticated user"""
    user_id = current_user_id or request.user_id
    if not user_id:
        return envelope(Result.fail("User is required", error_type=ErrorType.VALIDATION))

    dto = CreateOrderDTO(
        user_id=user_id,
        shipping_address=request.shipping_address,
        notes=request.notes,
        items=[OrderItemDTO(product_id=i.product_id, quantity=i.quantity) for i in request.items]
    )
    result = await CreateOrderUseCase(uow)(dto, actor)
    return envelope(result, OrderResponse.from_domain, status.HTTP_201_CREATED)


@router.get("/orders")
async def list_orders(page_number: int = 1, page_size: int = 20, uow=Depends(get_unit_of_work)):
    result = await ListOrdersUseCase(uow)(page_number, page_size)
    return envelope(result, _page(OrderSummaryResponse.from_domain))


@router.get("/orders/my-orders")
async def list_my_orders(
    uow=Depends(get_unit_of_work),
    current_user_id: Optional[str] = Depends(get_current_user_id)
):
    if not current_user_id:
        return envelope(Result.fail("User is required", error_type=ErrorType.VALIDATION))
    result = await ListUserOrdersUseCase(uow)(current_user_id)
    return envelope(result, _many(OrderSummaryResponse.from_domain))


@router.get("/orders/number/{order_number}")
async def get_order_by_number(order_number: str, uow=Depends(get_unit_of_work)):
    result = await GetOrderByNumberUseCase(uow)(order_number)
    return envelope(result, OrderResponse.from_domain)


@router.get("/orders/{order_id}")
async def get_order(order_id: str, uow=Depends(get_unit_of_work)):
    result = await GetOrderUseCase(uow)(order_id)
    return envelope(result, OrderResponse.from_domain)


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    request: UpdateOrderStatusRequest,
    uow=Depends(get_unit_of_work),
    actor: str = Depends(get_actor)
):
    dto = UpdateOrderStatusDTO(status=request.status, reason=request.reason)
    result = await UpdateOrderStatusUseCase(uow)(order_id, dto, actor)
    return envelope(result, OrderResponse.from_domain)


@router.post("/orders/{order_id}/items")
async def add_order_item(
    order_id: str,
    request: OrderItemRequest,
    uow=Depends(get_unit_of_work),
    actor: str = Depends(get_actor)
):
    dto = AddOrderItemDTO(product_id=request.product_id, quantity=request.quantity)
    result = await AddOrderItemUseCase(uow)(order_id, dto, actor)
    return envelope(result, OrderResponse.from_domain)


@router.patch("/orders/{order_id}/items")
async def update_order_item_quantity(
    order_id: str,
    request: UpdateOrderItemQuantityRequest,
    uow=Depends(get_unit_of_work),
    actor: str = Depends(get_actor)
):
    dto = UpdateOrderItemQuantityDTO(order_item_id=request.order_item_id, quantity=request.quantity)
    result = await UpdateOrderItemQuantityUseCase(uow)(order_id, dto, actor)
    return envelope(result, OrderResponse.from_domain)


@router.delete("/orders/{order_id}")
async def delete_order(order_id: str, uow=Depends(get_unit_of_work), actor: str = Depends(get_actor)):
    result = await DeleteOrderUseCase(uow)(order_id, actor)
    return envelope(result)


# Products

@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(
    request: CreateProductRequest,
    uow=Depends(get_unit_of_work),
    actor: str = Depends(get_actor)
):
    result = await CreateProductUseCase(uow)(CreateProductDTO(**request.model_dump()), actor)
    return envelope(result, ProductResponse.from_domain, status.HTTP_201_CREATED)


@router.get("/products")
async def list_products(page_number: int = 1, page_size: int = 20, uow=Depends(get_unit_of_work)):
    result = await ListProductsUseCase(uow)(page_number, page_size)
    return envelope(result, _page(ProductResponse.from_domain))


@router.get("/products/search")
async def search_products(
    term: str = "",
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    status: Optional[str] = None,
    page_number: int = 1,
    page_size: int = 20,
    uow=Depends(get_unit_of_work)
):
    dto = ProductSearchDTO(
        term=term,
        min_price=min_price,
        max_price=max_price,
        status=status,
        page_number=page_number,
        page_size=page_size
    )
    result = await SearchProductsUseCase(uow)(dto)
    return envelope(result, _page(ProductResponse.from_domain))


@router.get("/products/sku/{sku}")
async def get_product_by_sku(sku: str, uow=Depends(get_unit_of_work)):
    result = await GetProductBySkuUseCase(uow)(sku)
    return envelope(result, ProductResponse.from_domain)


@router.get("/products/low-stock")
async def list_low_stock_products(uow=Depends(get_unit_of_work)):
    result = await ListLowStockProductsUseCase(uow)()
    return envelope(result, _many(ProductResponse.from_domain))


@router.get("/products/{product_id}")
async def get_product(product_id: str, uow=Depends(get_unit_of_work)):
    result = await GetProductUseCase(uow)(product_id)
    return envelope(result, ProductResponse.from_domain)


@router.put("/products/{product_id}")
async def update_product(
    product_id: str,
    request: UpdateProductRequest,
    uow=Depends(get_unit_of_work),
    actor: str = Depends(get_actor)
):
    dto = UpdateProductDTO(**request.model_dump())
    result = await UpdateProductUseCase(uow)(product_id, actor, dto)
    return envelope(result, ProductResponse.from_domain)


@router.patch("/products/{product_id}/stock")
async def update_stock(
    product_id: str,
    request: UpdateStockRequest,
    uow=Depends(get_unit_of_work),
    actor: str = Depends(get_actor)
):
    dto = UpdateStockDTO(quantity=request.quantity, operation=request.operation)
    result = await UpdateStockUseCase(uow)(product_id, actor, dto)
    return envelope(result, ProductResponse.from_domain)


@router.post("/products/{product_id}/activate")
async def activate_product(product_id: str, uow=Depends(get_unit_of_work), actor: str = Depends(get_actor)):
    result = await ActivateProductUseCase(uow)(product_id, actor)
    return envelope(result, ProductResponse.from_domain)


@router.post("/products/{product_id}/deactivate")
async def deactivate_product(product_id: str, uow=Depends(get_unit_of_work), actor: str = Depends(get_actor)):
    result = await DeactivateProductUseCase(uow)(product_id, actor)
    return envelope(result, ProductResponse.from_domain)


@router.put("/products/{product_id}/discount")
async def set_discount(
    product_id: str,
    request: SetDiscountRequest,
    uow=Depends(get_unit_of_work),
    actor: str = Depends(get_actor)
):
    result = await SetDiscountUseCase(uow)(product_id, actor, request.discount_price)
    return envelope(result, ProductResponse.from_domain)


@router.delete("/products/{product_id}/discount")
async def remove_discount(product_id: str, uow=Depends(get_unit_of_work), actor: str = Depends(get_actor)):
    result = await RemoveDiscountUseCase(uow)(product_id, actor)
    return envelope(result, ProductResponse.from_domain)


@router.delete("/products/{product_id}")
async def delete_product(product_id: str, uow=Depends(get_unit_of_work), actor: str = Depends(get_actor)):
    result = await DeleteProductUseCase(uow)(product_id, actor)
    return envelope(result, lambda _: True)
