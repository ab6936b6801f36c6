from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

OUTCOME_SUCCESS = "success"
OUTCOME_FAILURE = "failure"


def notify(outcome: str, title: str | None, detail: str | None = None) -> None:
    """
    Fire-and-forget job outcome notification. Never raises.
    Posts JSON to NOTIFY_WEBHOOK_URL when configured, otherwise only logs.
    """
    try:
        msg = f"[{outcome}] {title or 'Untitled Video'}: {detail or ''}".strip()
        logger.info("Notification %s", msg)

        url = settings.notify_webhook_url
        if not url:
            return

        payload = {
            "outcome": outcome,
            "title": title,
            "detail": detail,
            "text": msg,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }
        with httpx.Client(timeout=settings.notify_timeout_sec) as client:
            r = client.post(url, json=payload)
            r.raise_for_status()
    except Exception as e:
        logger.warning("Notification failed (%s): %s", outcome, e)
