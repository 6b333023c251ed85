from __future__ import annotations

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from catalog_server.app.api.deps import create_opensearch
from catalog_server.app.api.routers import (
    health,
    search,
    documents,
    index
)
from catalog_server.app.platform.config import get_settings
from catalog_server.app.platform.logging import setup_logging
from catalog_server.app.platform.errors import (
    http_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
    domain_exception_handler
)
from catalog_server.app.platform import exceptions as domainex
from catalog_server.app.middlewares.request_context import RequestContextMiddleware

import logging
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(
        log_to_file=settings.LOG_TO_FILE,
        log_dir=settings.LOG_DIR,
        as_json=settings.LOG_JSON,
        level=settings.LOG_LEVEL)
    app.state.settings = settings

    # OpenSearch 클라이언트를 한 번만 생성해서 공유
    app.state.opensearch = create_opensearch(settings)
    try:
        yield
    finally:
        try:
            app.state.opensearch.close()
        except Exception:
            logger.warning("failed to close OpenSearch client", exc_info=True)

app = FastAPI(title="Catalog Search API", lifespan=lifespan)
app.include_router(health.router)
app.include_router(search.router, prefix="/api")
app.include_router(documents.router, prefix="/api")
app.include_router(index.router, prefix="/api")

# Global Exception Filter
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(domainex.DomainError, domain_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# 요청 컨텍스트/액세스 로그 미들웨어
app.add_middleware(RequestContextMiddleware)
