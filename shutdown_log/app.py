"""
FastAPI application entry point for the shutdown log service.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shutdown_log.config import get_settings
from shutdown_log.errors import Conflict, NotAuthenticated, NotFound, StoreFailure
from shutdown_log.routes import router

logger = logging.getLogger(__name__)


async def _not_authenticated_handler(
    request: Request, exc: NotAuthenticated
) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"detail": "Not authenticated"},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Log not found"})


async def _conflict_handler(request: Request, exc: Conflict) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "detail": "This log was changed elsewhere. Reload it and try again.",
            "revision": exc.actual,
        },
    )


async def _store_failure_handler(request: Request, exc: StoreFailure) -> JSONResponse:
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Could not reach the log store. Please try again."},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="Daily Shutdown Log", version="0.1.0")
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_exception_handler(NotAuthenticated, _not_authenticated_handler)
    app.add_exception_handler(NotFound, _not_found_handler)
    app.add_exception_handler(Conflict, _conflict_handler)
    app.add_exception_handler(StoreFailure, _store_failure_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("shutdown_log.app:app", host="127.0.0.1", port=8000)
