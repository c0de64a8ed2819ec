from contextlib import asynccontextmanager
from typing import Optional
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from . import __version__
from .config import Settings, settings as default_settings
from .dependencies import Services, build_services
from .error_handlers import register_error_handlers
from .observability import log_requests, setup_logging
from .routes import routers

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.log_level, settings.log_format)
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{settings.app_name} starting ({settings.environment})")
        logger.info(f"XRPL mode: {settings.xrpl_mode}, network: {settings.xrpl_network}")
        logger.info("Health check: /health")
        yield
        logger.info(f"{settings.app_name} shutting down")

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    register_error_handlers(app, production=settings.is_production)
    for router in routers:
        app.include_router(router)
    return app


app = create_app()


def run() -> None:
    uvicorn.run("xpay.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "5001")), log_level="info")
