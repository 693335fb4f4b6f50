"""Domain models, errors, pricing and the order transaction coordinator.

This module holds the value objects exchanged by the orders core, the
error taxonomy surfaced to HTTP callers, the pure pricing functions, and
``OrderService`` which drives one order through a single all-or-nothing
unit of work. Persistence is reached only through the ports declared
here, so nothing in this module knows about SQLAlchemy.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Callable, ContextManager, Dict, List, Optional, Protocol

logger = logging.getLogger("storefront.orders")

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Round ``value`` half-up to two decimal places.

    Floats are converted through ``str`` so their binary representation
    never leaks into the result (``19.9`` becomes ``Decimal("19.90")``).
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ---- Enums ----
class OrderStatus(str, Enum):
    """Order lifecycle states handled here. Orders are born ``NEW``."""

    NEW = "NEW"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"


# ---- Errors ----
class OrderError(Exception):
    """Base class for failures reported to API callers.

    Attributes:
        code: Stable machine-readable error code.
        status_code: HTTP status the API maps the error to.
    """

    code = "ORDER_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderError):
    """The request payload failed schema validation.

    Attributes:
        fields: Mapping of field path (``items.0.qty``) to messages.
    """

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, fields: Dict[str, List[str]], message: str = "Invalid order request"):
        super().__init__(message)
        self.fields = fields


class VariantNotFound(OrderError):
    code = "VARIANT_NOT_FOUND"
    status_code = 404

    def __init__(self, variant_id: int):
        super().__init__(f"Variant {variant_id} not found/active")
        self.variant_id = variant_id


class InsufficientStock(OrderError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, variant_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for variant {variant_id}: "
            f"requested {requested}, available {available}"
        )
        self.variant_id = variant_id
        self.requested = requested
        self.available = available


class StorageFailure(OrderError):
    """The database failed mid-transaction. The message is safe to expose."""

    code = "STORAGE_FAILURE"
    status_code = 500

    def __init__(self, message: str = "Order could not be processed, please try again later"):
        super().__init__(message)


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class LineRequest:
    variant_id: int
    qty: int


@dataclass(frozen=True)
class OrderRequest:
    """A validated order request.

    Attributes:
        items: Requested lines, in the order the client sent them.
        shipping_total: Shipping already rounded to cents.
        user_id: Optional customer id.
    """

    items: List[LineRequest]
    shipping_total: Decimal
    user_id: Optional[int] = None


@dataclass(frozen=True)
class VariantRow:
    """Catalog view of an active variant joined with its product.

    ``unit_price`` is already the effective price: the variant's override
    when set, otherwise the product's base price.
    """

    variant_id: int
    stock_qty: int
    product_id: int
    name: str
    sku: str
    unit_price: Decimal


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    variant_id: int
    name: str
    sku: str
    qty: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount_total: Decimal
    shipping_total: Decimal
    grand_total: Decimal


@dataclass
class PlacedOrder:
    """A persisted order as returned to callers."""

    order_id: int
    totals: OrderTotals
    items: List[PricedLine] = field(default_factory=list)
    user_id: Optional[int] = None
    status: OrderStatus = OrderStatus.NEW
    payment_status: PaymentStatus = PaymentStatus.PENDING


# ---- Pricing ----
def price_line(line: LineRequest, row: Optional[VariantRow]) -> PricedLine:
    """Price one requested line against its catalog row.

    Args:
        line: Requested variant and quantity.
        row: Active catalog row for ``line.variant_id`` or None when the
            variant is unknown or inactive.

    Returns:
        PricedLine: Line carrying everything an order item row needs.

    Raises:
        VariantNotFound: ``row`` is None.
        InsufficientStock: The row has fewer units than requested.
    """
    if row is None:
        raise VariantNotFound(line.variant_id)
    if row.stock_qty < line.qty:
        raise InsufficientStock(line.variant_id, line.qty, row.stock_qty)
    unit_price = to_money(row.unit_price)
    return PricedLine(
        product_id=row.product_id,
        variant_id=row.variant_id,
        name=row.name,
        sku=row.sku,
        qty=line.qty,
        unit_price=unit_price,
        total_price=to_money(unit_price * line.qty),
    )


def compute_totals(lines: List[PricedLine], shipping_total: Decimal) -> OrderTotals:
    """Aggregate priced lines into order totals.

    The subtotal is the exact sum of the already-rounded line totals. No
    discount engine exists yet, so ``discount_total`` is always zero.
    """
    subtotal = to_money(sum((line.total_price for line in lines), ZERO))
    discount_total = ZERO
    shipping = to_money(shipping_total)
    return OrderTotals(
        subtotal=subtotal,
        discount_total=discount_total,
        shipping_total=shipping,
        grand_total=to_money(subtotal - discount_total + shipping),
    )


# ---- Ports (DIP) ----
class CatalogPort(Protocol):
    """Catalog operations available inside an order transaction."""

    def get_active_variant(self, variant_id: int) -> Optional[VariantRow]:
        """Return the active variant row or None. May lock the row."""
        raise NotImplementedError()

    def decrement_stock(self, variant_id: int, qty: int) -> bool:
        """Subtract ``qty`` only if at least ``qty`` units remain.

        Returns:
            True when the row was updated, False when stock ran short.
        """
        raise NotImplementedError()

    def get_stock(self, variant_id: int) -> Optional[int]:
        raise NotImplementedError()


class OrderStorePort(Protocol):
    """Order persistence available inside an order transaction."""

    def add(self, request: OrderRequest, totals: OrderTotals, lines: List[PricedLine]) -> int:
        """Insert the order and its items and return the new order id."""
        raise NotImplementedError()

    def get(self, order_id: int) -> Optional[PlacedOrder]:
        raise NotImplementedError()


class UnitOfWork(Protocol):
    """One database transaction with its repositories.

    Entering yields the unit itself. A clean exit commits, an exception
    rolls everything back, and the underlying connection is released on
    every path.
    """

    catalog: CatalogPort
    orders: OrderStorePort

    def __enter__(self) -> "UnitOfWork":
        raise NotImplementedError()

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        raise NotImplementedError()


# ---- Domain service ----
class OrderService:
    """Coordinates pricing, persistence and stock decrement for orders.

    Each call opens a fresh unit of work from ``uow_factory``. Domain errors
    propagate out of the ``with`` block, which makes the unit of work roll
    back, so a failing line never leaves a partial order or a partial stock
    decrement behind.
    """

    def __init__(self, uow_factory: Callable[[], ContextManager[UnitOfWork]]):
        self._uow_factory = uow_factory

    def place_order(self, request: OrderRequest) -> PlacedOrder:
        """Price, persist and reserve stock for ``request`` atomically.

        Args:
            request: Validated order request.

        Returns:
            PlacedOrder: The committed order with its priced lines.

        Raises:
            VariantNotFound: A line references an unknown/inactive variant.
            InsufficientStock: A line asks for more than is in stock, either
                at pricing time or when the guarded decrement finds that a
                concurrent order took the units first.
            StorageFailure: The database failed; nothing was persisted.
        """
        with self._uow_factory() as uow:
            # 1) Price every line in request order; first failure aborts.
            lines = [
                price_line(item, uow.catalog.get_active_variant(item.variant_id))
                for item in request.items
            ]

            # 2) Aggregate
            totals = compute_totals(lines, request.shipping_total)

            # 3) Persist order + items
            order_id = uow.orders.add(request, totals, lines)

            # 4) Decrement stock, guarded against concurrent overdraw
            for line in lines:
                if not uow.catalog.decrement_stock(line.variant_id, line.qty):
                    available = uow.catalog.get_stock(line.variant_id) or 0
                    raise InsufficientStock(line.variant_id, line.qty, available)

        logger.info(
            "order.created",
            extra={"order_id": order_id, "lines": len(lines), "grand_total": str(totals.grand_total)},
        )
        return PlacedOrder(order_id=order_id, totals=totals, items=lines, user_id=request.user_id)

    def get_order(self, order_id: int) -> Optional[PlacedOrder]:
        """Load a committed order with its snapshotted line prices."""
        with self._uow_factory() as uow:
            return uow.orders.get(order_id)
