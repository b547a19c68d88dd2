from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, List, Tuple
from catalog_orders.domain.models import Order, Product, ProductStatus, User


class UserRepository(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[User]:
        pass


class ProductRepository(ABC):
    @abstractmethod
    async def get_by_id(self, product_id: str) -> Optional[Product]:
        pass

    @abstractmethod
    async def get_by_sku(self, sku: str) -> Optional[Product]:
        pass

    @abstractmethod
    async def add(self, product: Product) -> None:
        pass

    @abstractmethod
    async def save(self, product: Product) -> None:
        pass

    @abstractmethod
    async def list_low_stock(self) -> List[Product]:
        pass

    @abstractmethod
    async def list_active_paged(self, page_number: int, page_size: int) -> Tuple[List[Product], int]:
        """Active products ordered by name"""
        pass

    @abstractmethod
    async def search(
        self,
        term: str = "",
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        status: Optional[ProductStatus] = None
    ) -> List[Product]:
        """Case-insensitive match on name, description or SKU, ordered by name"""
        pass


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        """Order with its items"""
        pass

    @abstractmethod
    async def get_by_order_number(self, order_number: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def list_by_user(self, user_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def list_paged(self, page_number: int, page_size: int) -> Tuple[List[Order], int]:
        pass

    @abstractmethod
    async def add(self, order: Order) -> None:
        pass

    @abstractmethod
    async def save(self, order: Order) -> None:
        pass


class OutboxRepository(ABC):
    @abstractmethod
    async def create(self, event_type: str, event_data: dict, aggregate_id: str) -> str:
        pass

    @abstractmethod
    async def get_pending(self, limit: int = 10) -> List[dict]:
        pass

    @abstractmethod
    async def mark_as_published(self, event_id: str) -> None:
        pass


class ProcessedEventRepository(ABC):
    """Ledger of consumed broker events, used to make redelivery harmless"""

    @abstractmethod
    async def is_processed(self, idempotency_key: str) -> bool:
        pass

    @abstractmethod
    async def mark_as_processed(self, idempotency_key: str, event_type: str, aggregate_id: str) -> None:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def users(self) -> UserRepository:
        pass

    @property
    @abstractmethod
    def products(self) -> ProductRepository:
        pass

    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @property
    @abstractmethod
    def outbox(self) -> OutboxRepository:
        pass

    @property
    @abstractmethod
    def processed_events(self) -> ProcessedEventRepository:
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class MessagePublisher(ABC):
    @abstractmethod
    async def publish(self, event_type: str, key: str, payload: dict) -> bool:
        pass
