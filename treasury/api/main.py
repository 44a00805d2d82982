"""
FastAPI application factory.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config.settings import Settings
from ..container import Container, configure_container
from ..models.base import validation_messages
from ..services.error_handler import get_error_handler
from ..services.exceptions import RateLimitExceededError, TreasuryError
from ..services.logging_service import get_structured_logger
from ..utils.db_init import get_database_info
from . import api_router
from .dependencies import client_id, container, enforce_rate_limit

logger = get_structured_logger().get_logger(__name__)


def _user_id(request: Request) -> Optional[str]:
    return getattr(request.state, "user_id", None)


def register_exception_handlers(app: FastAPI) -> None:
    error_handler = get_error_handler()

    @app.exception_handler(TreasuryError)
    async def treasury_error_handler(request: Request, exc: TreasuryError):
        payload = error_handler.handle_exception(exc, context=request.url.path, user_id=_user_id(request))
        headers = {}
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(status_code=exc.status_code, content=payload, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        payload = error_handler.handle_validation_error(validation_messages(exc), context=request.url.path)
        return JSONResponse(status_code=400, content=payload)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        payload = error_handler.handle_exception(exc, context=request.url.path, user_id=_user_id(request))
        return JSONResponse(status_code=500, content=payload)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API; the global container is (re)configured with ``settings``."""
    settings = settings or Settings()
    configure_container(settings)

    app = FastAPI(
        title=settings.app.title,
        description="Treasury back office for Spanish SMEs",
        version=__version__,
        debug=settings.app.debug,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["health"])
    def health_check(request: Request, c: Container = Depends(container)) -> Dict[str, Any]:
        """Health check endpoint."""
        enforce_rate_limit(client_id(request), "health", c)
        return {
            "status": "healthy",
            "version": __version__,
            "environment": settings.app.environment.value,
            "tables": get_database_info(c.get_db_connection()),
        }

    logger.info("API application created", environment=settings.app.environment.value)
    return app
