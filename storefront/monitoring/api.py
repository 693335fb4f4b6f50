from datetime import datetime, timezone
import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .. import db

router = APIRouter(prefix="/api", tags=["monitoring"])

logger = logging.getLogger("storefront.monitoring")


def get_engine() -> Engine:
    return db.engine


@router.get("/health")
def health_view(engine: Annotated[Engine, Depends(get_engine)]):
    db_ok = False
    try:
        db_ok = db.ping(engine)
    except SQLAlchemyError:
        logger.warning("health check: database unreachable", exc_info=True)

    ok = db_ok
    code = 200 if ok else 503
    return JSONResponse(
        {
            "ok": ok,
            "time": datetime.now(timezone.utc).isoformat(),
            "components": {"db": {"ok": db_ok}},
        },
        status_code=code,
    )
