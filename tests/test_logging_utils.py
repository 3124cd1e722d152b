import json
import logging

from mindwell.libs import logging_utils
from mindwell.libs.logging_utils import ColorTextFormatter, JsonFormatter, logging_config


def _record(message, *, level=logging.INFO, **extra):
    record = logging.makeLogRecord(
        {"name": "mindwell.worker", "levelno": level, "levelname": logging.getLevelName(level), "msg": message}
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_strips_colors_and_keeps_extras(monkeypatch):
    monkeypatch.setattr(logging_utils, "COLOR_ENABLED", True)
    record = _record(
        logging_utils.colorize("dead-lettered evt:handler", "red"),
        level=logging.ERROR,
        handler="mood-tracking-handler",
        delivery_id="evt:mood-tracking-handler",
    )

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "dead-lettered evt:handler"
    assert payload["handler"] == "mood-tracking-handler"
    assert payload["delivery_id"] == "evt:mood-tracking-handler"
    assert payload["level"] == "ERROR"
    assert "msg" not in payload


def test_text_formatter_appends_delivery_context(monkeypatch):
    monkeypatch.setattr(logging_utils, "COLOR_ENABLED", False)
    formatter = ColorTextFormatter("%(levelname)s %(message)s")
    record = _record("step failed", level=logging.WARNING, delivery_id="e1:h", step="analyze-session", attempt=2)

    assert formatter.format(record) == "WARNING step failed [delivery_id=e1:h step=analyze-session attempt=2]"
    assert formatter.format(_record("plain")) == "INFO plain"


def test_logging_config_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("MINDWELL_LOG_LEVEL", "error")
    monkeypatch.setenv("MINDWELL_LOG_FORMAT", "json")

    config = logging_config(level="debug", fmt="text")

    assert config["handlers"]["console"] == {
        "class": "logging.StreamHandler",
        "formatter": "text",
        "level": "DEBUG",
    }
    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"]["httpx"]["level"] == "WARNING"
    assert logging_config()["handlers"]["console"]["level"] == "ERROR"
