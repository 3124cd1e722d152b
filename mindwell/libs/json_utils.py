from __future__ import annotations

import json
import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel


def json_safe(obj: Any) -> Any:
    """Recursively convert objects (models, UUIDs, datetimes) into JSON-serializable structures."""

    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True)
    if isinstance(obj, uuid.UUID):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, dict):
        return {str(k): json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [json_safe(item) for item in obj]
    return obj


def extract_json_block(blob: str) -> str:
    """
    Strip markdown fences and trailing commas from LLM responses,
    returning a best-effort JSON string.
    """

    text = (blob or "").strip()
    if text.startswith("```"):
        newline_idx = text.find("\n")
        if newline_idx != -1:
            text = text[newline_idx + 1 :]
        else:
            text = text[3:]
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    text = text.strip()
    if text and text[0] not in "{[":
        starts = [idx for idx in (text.find("{"), text.find("[")) if idx != -1]
        if starts:
            text = text[min(starts) :]
    if text:
        closing_idx = max(text.rfind("]"), text.rfind("}"))
        if closing_idx != -1:
            text = text[: closing_idx + 1]
    text = _strip_trailing_commas(text)
    return text.strip()


def loads_llm_json(blob: str) -> Any:
    """Parse model output that is expected to hold JSON, fenced or not.

    Raises ``ValueError`` (``json.JSONDecodeError``) when nothing parseable is found.
    """

    return json.loads(extract_json_block(blob))


def _strip_trailing_commas(text: str) -> str:
    return re.sub(r",(\s*[}\]])", r"\1", text)


__all__ = ["json_safe", "extract_json_block", "loads_llm_json"]
