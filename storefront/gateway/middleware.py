"""HTTP middleware that assigns and propagates a request identifier.

Every incoming request receives a request identifier. The value of the
``X-Request-ID`` header is reused when the client sends one, otherwise a
UUID4 is generated. The id is stored on ``request.state`` and in the
``REQUEST_ID_CTX`` ContextVar so log records emitted downstream can be
correlated without passing the id around, and it is echoed back in the
response header.

The module also provides a guard that rejects oversized ``/api/`` bodies
before they are read.
"""

import contextvars
import logging
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse

from ..config import get_settings

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
HEADER = "X-Request-ID"

logger = logging.getLogger("storefront.gateway")


async def add_request_id(request: Request, call_next):
    """Attach a request id, log the request and echo the id in the response."""
    rid = request.headers.get(HEADER) or str(uuid.uuid4())
    request.state.request_id = rid
    token = REQUEST_ID_CTX.set(rid)
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
    finally:
        logger.info(
            "request handled",
            extra={"path": request.url.path, "method": request.method, "status": status_code},
        )
        REQUEST_ID_CTX.reset(token)
    response.headers[HEADER] = rid
    return response


async def limit_api_body_size(request: Request, call_next):
    """Answer 413 when an ``/api/`` request declares a too-large body."""
    if request.url.path.startswith("/api/"):
        clen = request.headers.get("content-length")
        if clen and clen.isdigit() and int(clen) > get_settings().api_max_bytes:
            return JSONResponse(
                {"detail": "PAYLOAD_TOO_LARGE", "message": "Request body is too large"},
                status_code=413,
            )
    return await call_next(request)
