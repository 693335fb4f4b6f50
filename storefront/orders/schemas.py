"""Pydantic schemas for the orders API.

``CreateOrderDTO`` coerces the loosely typed JSON body into a strongly
typed request, and ``parse_order_request`` turns pydantic failures into
the domain ``ValidationError`` with one list of readable messages per
field. Response schemas serialize money as JSON numbers.
"""

from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field, PlainSerializer, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..config import get_settings
from .domain import (
    LineRequest,
    OrderRequest,
    PlacedOrder,
    ValidationError,
    to_money,
)

# largest amount a NUMERIC(12,2) column holds
MAX_MONEY = Decimal("9999999999.99")

PositiveInt = Annotated[int, Field(gt=0)]
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# pydantic error type -> message template (``{field}`` is the last path part)
MESSAGES = {
    "missing": "{field} is required",
    "int_type": "{field} must be a number",
    "int_parsing": "{field} must be an integer",
    "int_from_float": "{field} must be an integer",
    "greater_than": "{field} must be greater than zero",
    "greater_than_equal": "{field} cannot be negative",
    "less_than_equal": "{field} must not exceed 9999999999.99",
    "decimal_type": "{field} must be a number",
    "decimal_parsing": "{field} must be a number",
    "finite_number": "{field} must be a finite number",
    "list_type": "{field} must be a list",
    "model_type": "{field} must be an object",
    "model_attributes_type": "{field} must be an object",
}


def _default_shipping() -> Decimal:
    return get_settings().default_shipping_total


class OrderItemIn(BaseModel):
    """Input schema for a single order line.

    Attributes:
        variant_id: Positive variant identifier.
        qty: Positive number of units.
    """

    variant_id: PositiveInt
    qty: PositiveInt


class CreateOrderDTO(BaseModel):
    """Schema for creating an order.

    Attributes:
        user_id: Optional positive customer id; ``null`` is accepted.
        items: Non-empty list of ``OrderItemIn``.
        shipping_total: Non-negative amount rounded half-up to cents.
            Defaults to ``Settings.default_shipping_total``.
    """

    user_id: Optional[PositiveInt] = None
    items: List[OrderItemIn]
    shipping_total: Decimal = Field(default_factory=_default_shipping, ge=0, le=MAX_MONEY)

    @field_validator("items")
    @classmethod
    def validate_items(cls, v: List[OrderItemIn]) -> List[OrderItemIn]:
        if not v:
            raise ValueError("items must have at least one entry")
        return v

    @field_validator("shipping_total")
    @classmethod
    def round_shipping(cls, v: Decimal) -> Decimal:
        return to_money(v)

    def to_domain(self) -> OrderRequest:
        return OrderRequest(
            items=[LineRequest(variant_id=i.variant_id, qty=i.qty) for i in self.items],
            shipping_total=self.shipping_total,
            user_id=self.user_id,
        )


def _field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    fields: Dict[str, List[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err["loc"]]
        key = ".".join(loc) or "body"
        name = loc[-1] if loc else "body"
        if err["type"] == "value_error":
            message = str(err["ctx"]["error"])
        elif err["type"] in MESSAGES:
            message = MESSAGES[err["type"]].format(field=name)
        else:
            message = err["msg"]
        fields.setdefault(key, []).append(message)
    return fields


def parse_order_request(payload: Any) -> OrderRequest:
    """Validate a raw request body and return the domain request.

    Args:
        payload: Decoded JSON body (any type).

    Returns:
        OrderRequest: Normalized request.

    Raises:
        ValidationError: With a field-keyed map of messages.
    """
    try:
        dto = CreateOrderDTO.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(_field_errors(e)) from e
    return dto.to_domain()


class OrderItemOut(BaseModel):
    product_id: int
    variant_id: int
    name: str
    sku: str
    qty: int
    unit_price: Money
    total_price: Money


class OrderCreatedDTO(BaseModel):
    """Response body for a created order."""

    order_id: int
    subtotal: Money
    discount_total: Money
    shipping_total: Money
    grand_total: Money
    items: List[OrderItemOut]

    @classmethod
    def from_domain(cls, order: PlacedOrder, **extra) -> "OrderCreatedDTO":
        return cls(
            order_id=order.order_id,
            subtotal=order.totals.subtotal,
            discount_total=order.totals.discount_total,
            shipping_total=order.totals.shipping_total,
            grand_total=order.totals.grand_total,
            items=[
                OrderItemOut(
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    name=line.name,
                    sku=line.sku,
                    qty=line.qty,
                    unit_price=line.unit_price,
                    total_price=line.total_price,
                )
                for line in order.items
            ],
            **extra,
        )


class OrderReadDTO(OrderCreatedDTO):
    """Response body for a stored order, including its lifecycle state."""

    user_id: Optional[int] = None
    status: str
    payment_status: str

    @classmethod
    def from_placed(cls, order: PlacedOrder) -> "OrderReadDTO":
        return cls.from_domain(
            order,
            user_id=order.user_id,
            status=order.status.value,
            payment_status=order.payment_status.value,
        )


class ErrorDTO(BaseModel):
    detail: str
    message: str
    fields: Optional[Dict[str, List[str]]] = None
