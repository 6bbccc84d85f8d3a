import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.base.config.database import ping_db

router = APIRouter(tags=["Health"], prefix="")
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(request: Request):
    """
    Health check endpoint.
    Returns 200 OK if the service is healthy, including database connectivity status.
    """
    result = {"status": "Healthy", "message": "Service is up and running."}

    engine = getattr(request.app.state, "db_engine", None)
    if engine is None:
        result["database"] = "not configured"
    else:
        try:
            await ping_db(engine)
            result["database"] = "connected"
        except Exception:
            logger.exception("Database health check failed")
            result["database"] = "unavailable"
            result["status"] = "Degraded"

    return JSONResponse(status_code=200, content=result)


@router.get("/")
async def root():
    return JSONResponse(
        status_code=200,
        content={"status": "Healthy", "message": "Service is up and running."},
    )
