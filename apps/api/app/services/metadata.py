from __future__ import annotations

import json
import logging
import os
import re
from typing import Any

from app.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Uploaded via V-UPLOAD AI"
TITLE_MAX = 100

METADATA_SYSTEM = (
    "You write YouTube metadata. "
    "Return ONLY valid JSON with keys: title (string), description (string), "
    "tags (array of strings), hashtags (array of strings without '#')."
)

METADATA_USER_TEMPLATE = (
    "Create a catchy YouTube title and a brief SEO-optimized description "
    'for a video named: "{filename}".'
)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def fallback_metadata(filename: str) -> dict[str, Any]:
    return {"title": filename, "description": DEFAULT_DESCRIPTION}


def _build_openai_client():
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY is missing")

    timeout_sec = float(os.getenv("OPENAI_TIMEOUT_SEC", "30"))
    max_retries = int(os.getenv("OPENAI_MAX_RETRIES", "1"))

    from openai import OpenAI  # type: ignore

    return OpenAI(api_key=api_key, timeout=timeout_sec, max_retries=max_retries)


def _extract_json(text: str) -> dict[str, Any]:
    """
    Best-effort JSON extraction if model returns extra text or code fences.
    """
    text = _FENCE_RE.sub("", text or "").strip()
    if not text:
        raise ValueError("Empty response from model")

    try:
        data = json.loads(text)
    except Exception:
        start = text.find("{")
        end = text.rfind("}")
        if start < 0 or end <= start:
            raise ValueError(f"Model returned non-JSON. First 200 chars: {text[:200]!r}")
        data = json.loads(text[start : end + 1])

    if not isinstance(data, dict):
        raise ValueError("Model JSON is not an object")
    return data


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def _normalize(data: dict[str, Any], filename: str) -> dict[str, Any]:
    title = " ".join(str(data.get("title") or "").split())[:TITLE_MAX] or filename
    description = str(data.get("description") or "").strip() or DEFAULT_DESCRIPTION
    return {
        "title": title,
        "description": description,
        "tags": _str_list(data.get("tags")),
        "hashtags": [h.lstrip("#") for h in _str_list(data.get("hashtags"))],
    }


def generate_metadata(filename: str, client=None) -> dict[str, Any]:
    client = client or _build_openai_client()
    chat = client.chat.completions.create(
        model=settings.openai_model,
        messages=[
            {"role": "system", "content": METADATA_SYSTEM},
            {"role": "user", "content": METADATA_USER_TEMPLATE.format(filename=filename)},
        ],
        response_format={"type": "json_object"},
    )
    raw_text = (chat.choices[0].message.content or "").strip()
    return _normalize(_extract_json(raw_text), filename)


def suggest_metadata(filename: str, client=None) -> dict[str, Any]:
    """
    Title/description suggestion for a Drive file name. Never raises:
    any failure returns the filename as title and the default description.
    """
    filename = (filename or "").strip()
    try:
        return generate_metadata(filename, client=client)
    except Exception as e:
        logger.warning("Metadata suggestion failed for %r: %s", filename, e)
        return fallback_metadata(filename)
