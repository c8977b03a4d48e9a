import asyncio
import logging
import os
import signal

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .api import auth as auth_api
from .api import jobs as jobs_api
from .api import users as users_api
from .database import init_db
from .logging_config import sanitize_log_data, setup_logging
from .middleware import RateLimitMiddleware, SecurityHeadersMiddleware
from .utils.error_handlers import register_exception_handlers

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

_default_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _allowed_origins() -> list[str]:
    extra = [
        origin.strip()
        for origin in os.getenv("FRONTEND_ORIGINS", "").split(",")
        if origin.strip()
    ]
    return [*_default_origins, *extra]


def build_api_router() -> APIRouter:
    api_router = APIRouter(prefix=API_PREFIX)
    api_router.include_router(auth_api.router)
    api_router.include_router(jobs_api.router)
    api_router.include_router(users_api.router)
    return api_router


def _fail_fast(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """An error escaped every handler: log it and stop the process."""
    exc = context.get("exception")
    logger.critical("Unhandled error in event loop: %s", context.get("message"), exc_info=exc)
    os.kill(os.getpid(), signal.SIGTERM)


def create_app(*, rate_limit: bool = True) -> FastAPI:
    app = FastAPI(title="Jobee API")

    app.include_router(build_api_router())
    register_exception_handlers(app)

    @app.get("/health")
    def health_check():
        return {"status": "Backend running", "service": "Jobee API"}

    if rate_limit:
        app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        setup_logging(config.LOG_LEVEL)
        logger.info(
            "Starting Jobee API: %s",
            sanitize_log_data({
                "environment": config.ENVIRONMENT,
                "database_url": config.DATABASE_URL,
                "upload_dir": config.UPLOAD_DIR,
                "geocoder_api_key": config.GEOCODER_API_KEY,
            }),
        )
        init_db()
        asyncio.get_running_loop().set_exception_handler(_fail_fast)

    return app


app = create_app()
