"""HTTP views for the orders API.

Views are kept intentionally small: they validate the body (via pydantic),
delegate to the domain service obtained from ``get_order_service``, and
map the outcome to an HTTP response.

Status mapping for ``POST /api/orders``:
    - 201 with the priced order when it was committed.
    - 400 ``VALIDATION_ERROR`` with a ``fields`` breakdown.
    - 404 ``VARIANT_NOT_FOUND`` for unknown or inactive variants.
    - 409 ``INSUFFICIENT_STOCK`` when a line asks for more than is left.
    - 500 ``STORAGE_FAILURE`` for database or unexpected failures. The
      client gets a generic message; the cause goes to the log.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from .domain import (
    InsufficientStock,
    OrderError,
    OrderService,
    StorageFailure,
    ValidationError,
    VariantNotFound,
)
from .providers import get_order_service
from .schemas import ErrorDTO, OrderCreatedDTO, OrderReadDTO, parse_order_request

logger = logging.getLogger("storefront.orders.views")

router = APIRouter(prefix="/api/orders", tags=["orders"])

Service = Annotated[OrderService, Depends(get_order_service)]


def error_response(err: OrderError) -> JSONResponse:
    body = ErrorDTO(detail=err.code, message=err.message, fields=getattr(err, "fields", None))
    return JSONResponse(body.model_dump(exclude_none=True), status_code=err.status_code)


@router.post("", status_code=201)
def create_order(service: Service, payload: Annotated[Any, Body()] = None):
    """Create a new order.

    Args:
        service: Order service injected by FastAPI.
        payload: Raw JSON body ``{user_id?, items: [{variant_id, qty}],
            shipping_total?}``. Validation happens here rather than in
            FastAPI so errors follow this API's error shape.

    Returns:
        JSONResponse: See the module docstring for the status mapping.
    """
    # 1) Pydantic validation
    try:
        request = parse_order_request(payload)
    except ValidationError as e:
        return error_response(e)

    # 2) Domain
    try:
        order = service.place_order(request)
    except (VariantNotFound, InsufficientStock) as e:
        logger.warning("order.rejected", extra={"code": e.code, "variant_id": e.variant_id})
        return error_response(e)
    except StorageFailure as e:
        return error_response(e)
    except Exception:
        logger.exception("order.failed")
        return error_response(StorageFailure())

    # 3) Response
    body = OrderCreatedDTO.from_domain(order)
    return JSONResponse(body.model_dump(mode="json"), status_code=201)


@router.get("/{order_id}")
def retrieve_order(order_id: int, service: Service):
    """Return a stored order with the line prices captured at creation."""
    try:
        order = service.get_order(order_id)
    except StorageFailure as e:
        return error_response(e)
    if order is None:
        return JSONResponse({"detail": "NOT_FOUND", "message": f"Order {order_id} not found"}, status_code=404)
    return JSONResponse(OrderReadDTO.from_placed(order).model_dump(mode="json"), status_code=200)
