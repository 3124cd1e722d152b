import logging

from redis import Redis
from rq import Queue, Worker

from mindwell.apps.api.core.llm import build_router, set_router as set_llm_router
from mindwell.apps.worker.workflow.registry import load_handlers
from mindwell.libs.logging_utils import configure_logging
from mindwell.libs.schemas.settings import get_settings

LOGGER = logging.getLogger("mindwell.worker")


def get_redis(url: str) -> Redis:
    LOGGER.info("Connecting to Redis at %s", url)
    return Redis.from_url(url)


def run() -> None:
    configure_logging()
    settings = get_settings()
    conn = get_redis(settings.redis_url)
    queue = Queue(settings.workflow_queue, connection=conn)
    LOGGER.info("Registered queue: %s", queue.name)

    load_handlers()
    try:
        set_llm_router(build_router(settings))
        LOGGER.info("LLM router initialised for worker context.")
    except ValueError as exc:
        LOGGER.warning("Failed to initialise LLM router: %s", exc)

    worker = Worker([queue], connection=conn)
    LOGGER.info("Worker started; listening on %s.", queue.name)
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    run()
