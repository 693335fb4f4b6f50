"""Service provider helpers for wiring OrderService with its unit of work.

``get_order_service`` is used as a FastAPI dependency by the order views.
Tests replace it through ``app.dependency_overrides`` to point the service
at a throwaway database.
"""

from ..db import SessionLocal
from .domain import OrderService
from .repository import SqlAlchemyUnitOfWork


def get_order_service() -> OrderService:
    """Return an OrderService bound to the process-wide session factory.

    Returns:
        OrderService: A service whose every call runs in its own
        ``SqlAlchemyUnitOfWork``.
    """
    return OrderService(lambda: SqlAlchemyUnitOfWork(SessionLocal))
