"""SQLAlchemy repositories and the unit of work for order transactions.

The repositories are bound to a single session supplied by
``SqlAlchemyUnitOfWork`` so every read and write of one order happens in
one database transaction. They return domain dataclasses, never ORM
objects, to keep the domain layer decoupled from SQLAlchemy.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from ..db import SessionLocal
from .domain import (
    OrderRequest,
    OrderStatus,
    OrderTotals,
    PaymentStatus,
    PlacedOrder,
    PricedLine,
    StorageFailure,
    VariantRow,
)
from .models import Order, OrderItem, Product, Variant

logger = logging.getLogger("storefront.orders.repository")


class CatalogRepository:
    """Variant lookups and guarded stock decrements."""

    def __init__(self, session: Session):
        self.session = session

    def get_active_variant(self, variant_id: int) -> Optional[VariantRow]:
        """Load an active variant with its product and effective price.

        The variant row is selected ``FOR UPDATE`` so concurrent orders for
        the same variant queue behind this transaction on backends that
        support row locks.

        Args:
            variant_id: Variant primary key.

        Returns:
            VariantRow or None when the variant is missing or inactive.
        """
        stmt = (
            select(
                Variant.id,
                Variant.stock_qty,
                Product.id,
                Product.name,
                Product.sku,
                func.coalesce(Variant.price_override, Product.price),
            )
            .join(Product, Product.id == Variant.product_id)
            .where(Variant.id == variant_id, Variant.active.is_(True))
            .with_for_update(of=Variant)
        )
        row = self.session.execute(stmt).first()
        if row is None:
            return None
        vid, stock_qty, product_id, name, sku, unit_price = row
        return VariantRow(
            variant_id=vid,
            stock_qty=stock_qty,
            product_id=product_id,
            name=name,
            sku=sku,
            unit_price=unit_price,
        )

    def decrement_stock(self, variant_id: int, qty: int) -> bool:
        """Subtract ``qty`` units if the variant still holds at least that many.

        Returns:
            bool: True when exactly one row was updated.
        """
        stmt = (
            update(Variant)
            .where(Variant.id == variant_id, Variant.stock_qty >= qty)
            .values(stock_qty=Variant.stock_qty - qty)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def get_stock(self, variant_id: int) -> Optional[int]:
        return self.session.execute(
            select(Variant.stock_qty).where(Variant.id == variant_id)
        ).scalar_one_or_none()


class OrderRepository:
    """Persists orders together with their line snapshots."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, request: OrderRequest, totals: OrderTotals, lines: List[PricedLine]) -> int:
        """Insert one order row plus one item row per priced line.

        Items are added in ``lines`` order, which is the request order.

        Returns:
            int: The generated order id.
        """
        order = Order(
            user_id=request.user_id,
            status=OrderStatus.NEW.value,
            subtotal=totals.subtotal,
            discount_total=totals.discount_total,
            shipping_total=totals.shipping_total,
            grand_total=totals.grand_total,
            payment_status=PaymentStatus.PENDING.value,
        )
        order.items = [
            OrderItem(
                product_id=line.product_id,
                variant_id=line.variant_id,
                name=line.name,
                sku=line.sku,
                qty=line.qty,
                unit_price=line.unit_price,
                total_price=line.total_price,
            )
            for line in lines
        ]
        self.session.add(order)
        self.session.flush()
        return order.id

    def get(self, order_id: int) -> Optional[PlacedOrder]:
        order = self.session.execute(
            select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
        ).scalar_one_or_none()
        if order is None:
            return None
        return PlacedOrder(
            order_id=order.id,
            totals=OrderTotals(
                subtotal=order.subtotal,
                discount_total=order.discount_total,
                shipping_total=order.shipping_total,
                grand_total=order.grand_total,
            ),
            items=[
                PricedLine(
                    product_id=it.product_id,
                    variant_id=it.variant_id,
                    name=it.name,
                    sku=it.sku,
                    qty=it.qty,
                    unit_price=it.unit_price,
                    total_price=it.total_price,
                )
                for it in order.items
            ],
            user_id=order.user_id,
            status=OrderStatus(order.status),
            payment_status=PaymentStatus(order.payment_status),
        )


class SqlAlchemyUnitOfWork:
    """One session, one transaction, guaranteed release.

    Commits when the ``with`` block exits cleanly and rolls back when it
    raises. Database errors, including a failed commit, surface as
    ``StorageFailure`` with the original exception chained.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory
        self.session: Optional[Session] = None

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        self.session = self._session_factory()
        self.catalog = CatalogRepository(self.session)
        self.orders = OrderRepository(self.session)
        return self

    def __exit__(self, exc_type, exc, tb):
        session = self.session
        try:
            if exc_type is None:
                try:
                    session.commit()
                except SQLAlchemyError as commit_exc:
                    logger.error("order transaction commit failed", exc_info=commit_exc)
                    self._rollback(session)
                    raise StorageFailure() from commit_exc
                return None

            self._rollback(session)
            if isinstance(exc, SQLAlchemyError):
                logger.error("order transaction failed", exc_info=exc)
                raise StorageFailure() from exc
            return None
        finally:
            session.close()
            self.session = None

    @staticmethod
    def _rollback(session: Session) -> None:
        try:
            session.rollback()
        except SQLAlchemyError:
            # The connection is gone; closing the session discards it.
            logger.exception("order transaction rollback failed")
