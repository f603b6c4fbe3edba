from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from brokerdesk.api.routes import router as api_router
from brokerdesk.core.config import get_settings
from brokerdesk.core.context import RequestContextMiddleware
from brokerdesk.core.errors import register_exception_handlers
from brokerdesk.logging import configure_logging
from brokerdesk.middleware.correlation_id import CorrelationIdMiddleware
from brokerdesk.middleware.rate_limit import MutationRateLimitMiddleware
from brokerdesk.middleware.request_logging import RequestLoggingMiddleware
from brokerdesk.otel import instrument_app, setup_otel


configure_logging()
logger = logging.getLogger("brokerdesk.lifecycle")
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("system.started", extra={"action": "startup"})
    yield
    logger.info("system.stopped", extra={"action": "shutdown"})


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
# last added runs first: correlation id, logging, request context, rate limit
app.add_middleware(MutationRateLimitMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)
app.include_router(api_router)

setup_otel(settings)
instrument_app(app)
