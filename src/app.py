import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from src.base.config.logging_config import LoggingConfig
from src.base.config.openapi_config import setup_openapi
from src.base.core.lifespan import lifespan
from src.base.middleware.auth_middleware import AuthMiddleware
from src.base.middleware.correlation_middleware import CorrelationMiddleware
from src.base.middleware.global_exception_handler_middleware import (
    GlobalExceptionHandlerMiddleware,
)
from src.base.routes.health import router as health_router
from src.domain.routes.auth_routes import router as auth_router
from src.domain.routes.user_routes import router as user_router

# Load environment variables
load_dotenv()

# --- Logging configuration ---
LoggingConfig.setup_logging()
logger = logging.getLogger(__name__)

logger.info("Starting Media Catalog API")

# --- FastAPI app ---
app = FastAPI(title="Media Catalog API", version="1.0.0", lifespan=lifespan)

setup_openapi(app)

# --- Middleware (last added runs first) ---
app.add_middleware(AuthMiddleware)
app.add_middleware(GlobalExceptionHandlerMiddleware)
app.add_middleware(CorrelationMiddleware)

# --- Routes ---
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(user_router)
