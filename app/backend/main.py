import logging

from fastapi import FastAPI

from app_service import APP_VERSION, PriceService
from container import build_container
from errors import register_error_handling
from routers import api_router

logger = logging.getLogger("tpir")


def create_app(service=None, container=None):
    """Build the HTTP API around a ``PriceService``.

    Without an explicit service one is built from the configuration file and
    environment, the same way the command line tool does.
    """
    if service is None:
        container = container or build_container()
        logging.getLogger().setLevel(container.settings.log_level)
        service = PriceService.from_container(container, logger=logger)

    app = FastAPI(title="The Price Is Right API", version=APP_VERSION)
    app.state.price_service = service
    register_error_handling(app, logger)
    app.include_router(api_router.router)
    service.log_cache_status()
    return app
