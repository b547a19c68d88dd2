from contextlib import asynccontextmanager
from typing import AsyncIterator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_orders.application.interfaces import (
    OrderRepository,
    OutboxRepository,
    ProcessedEventRepository,
    ProductRepository,
    UnitOfWork as AbstractUnitOfWork,
    UserRepository
)
from catalog_orders.infrastructure.repositories import (
    SQLAlchemyUserRepository,
    SQLAlchemyProductRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyOutboxRepository,
    SQLAlchemyProcessedEventRepository
)


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """One database transaction shared by every repository.

    Users, products, orders, the outbox and the processed-event ledger all
    write through the same ``AsyncSession``, so an order change, the stock
    it moves and the events it stages land in a single commit or not at all.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._users = SQLAlchemyUserRepository(session)
        self._products = SQLAlchemyProductRepository(session)
        self._orders = SQLAlchemyOrderRepository(session)
        self._outbox = SQLAlchemyOutboxRepository(session)
        self._processed_events = SQLAlchemyProcessedEventRepository(session)

    @property
    def users(self) -> UserRepository:
        return self._users

    @property
    def products(self) -> ProductRepository:
        return self._products

    @property
    def orders(self) -> OrderRepository:
        return self._orders

    @property
    def outbox(self) -> OutboxRepository:
        return self._outbox

    @property
    def processed_events(self) -> ProcessedEventRepository:
        return self._processed_events

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()


class UnitOfWork:
    """Opens a fresh session per ``async with uow() as session`` block"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self) -> AsyncIterator[SQLAlchemyUnitOfWork]:
        async with self._session_factory() as session:
            uow = SQLAlchemyUnitOfWork(session)
            try:
                yield uow
            finally:
                # Whatever was not committed inside the block is discarded
                await uow.rollback()
