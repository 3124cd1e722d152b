"""FastAPI application entrypoint for MindWell."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mindwell.libs.logging_utils import colorize, configure_logging

configure_logging()

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette_exporter import PrometheusMiddleware, handle_metrics

from mindwell import __version__
from mindwell.apps.api.core.llm import build_router, set_router as set_llm_router
from mindwell.apps.api.routes import (
    activity_router,
    chat_router,
    dashboard_router,
    mood_router,
    recommendations_router,
)
from mindwell.apps.worker.workflow import get_event_bus
from mindwell.libs.schemas import close_async_pool, get_settings
from mindwell.libs.schemas.events import InvalidEventError

LOGGER = logging.getLogger(__name__)
SETTINGS = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    set_llm_router(build_router(settings))
    app.state.event_bus = get_event_bus()
    LOGGER.info(
        colorize("API started", "green"),
        extra={"event": "startup", "transport": settings.workflow_transport, "environment": settings.environment},
    )
    try:
        yield
    finally:
        await close_async_pool()


app = FastAPI(title=f"{SETTINGS.app_name} API", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(PrometheusMiddleware)
app.add_route("/metrics", handle_metrics)


@app.exception_handler(InvalidEventError)
async def invalid_event_handler(request: Request, exc: InvalidEventError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.get("/health")
def health():
    return {"status": "ok"}


api_router = APIRouter(prefix="/api")
api_router.include_router(chat_router)
api_router.include_router(mood_router)
api_router.include_router(activity_router)
api_router.include_router(recommendations_router)
api_router.include_router(dashboard_router)
app.include_router(api_router)
