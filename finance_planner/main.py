from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import settings
from .core.database import init_db
from .core.logging_config import configure_logging
from .errors import (
    ConflictError,
    FinancePlannerError,
    NotFoundError,
    OwnershipError,
)
from .routers import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    init_db()
    logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)
    yield


app = FastAPI(title=settings.APP_NAME, version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _status_for(exc: FinancePlannerError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, OwnershipError):
        return 403
    if isinstance(exc, ConflictError):
        return 409
    # ledger failures, invalid transactions and category cycles
    return 400


@app.exception_handler(FinancePlannerError)
async def domain_error_handler(request: Request, exc: FinancePlannerError):
    status = _status_for(exc)
    logger.info("%s %s rejected (%s): %s", request.method, request.url.path, status, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(router, prefix="/api")
