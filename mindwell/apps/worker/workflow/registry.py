"""Handler registry: which functions run for which event name."""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List

from mindwell.libs.schemas.events import EVENT_NAMES
from mindwell.libs.schemas.settings import AppSettings

Handler = Callable[[Any, Any], Awaitable[Dict[str, Any]]]

_HANDLERS: Dict[str, "HandlerSpec"] = {}
_FUNCTIONS_MODULE = "mindwell.apps.worker.functions"


@dataclass(frozen=True)
class HandlerSpec:
    name: str
    event: str
    fn: Handler
    retries: int = 3


def workflow(name: str, *, event: str, retries: int = 3) -> Callable[[Handler], Handler]:
    """Register ``fn`` as handler ``name`` for ``event``."""

    if event not in EVENT_NAMES:
        raise ValueError(f"Unknown event '{event}' for handler {name}")
    if retries < 0:
        raise ValueError("retries must be >= 0")

    def decorator(fn: Handler) -> Handler:
        existing = _HANDLERS.get(name)
        if existing is not None and existing.fn is not fn:
            raise ValueError(f"Handler '{name}' is already registered")
        _HANDLERS[name] = HandlerSpec(name=name, event=event, fn=fn, retries=retries)
        return fn

    return decorator


def load_handlers() -> None:
    importlib.import_module(_FUNCTIONS_MODULE)


def handlers_for(event: str) -> List[HandlerSpec]:
    load_handlers()
    return [spec for spec in _HANDLERS.values() if spec.event == event]


def get_handler(name: str) -> HandlerSpec:
    load_handlers()
    try:
        return _HANDLERS[name]
    except KeyError:
        raise KeyError(f"No workflow handler named '{name}'") from None


def retry_budget(spec: HandlerSpec, settings: AppSettings | None = None) -> int:
    if settings is not None and spec.name in settings.workflow_retries:
        return max(0, int(settings.workflow_retries[spec.name]))
    return spec.retries


__all__ = ["HandlerSpec", "get_handler", "handlers_for", "load_handlers", "retry_budget", "workflow"]
