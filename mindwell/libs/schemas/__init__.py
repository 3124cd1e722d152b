"""Pydantic models, settings and database pool helpers."""

from .db import close_async_pool, get_async_pool
from .settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "close_async_pool",
    "get_async_pool",
    "get_settings",
]
