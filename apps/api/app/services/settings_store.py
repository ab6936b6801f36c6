import json
from typing import Any

from sqlalchemy.orm import Session

from app.models.setting import Setting

GOOGLE_TOKENS_KEY = "google_tokens"


def get_setting(db: Session, key: str) -> str | None:
    row = db.query(Setting).filter(Setting.key == key).first()
    return row.value if row else None


def set_setting(db: Session, key: str, value: str | None) -> Setting:
    row = db.query(Setting).filter(Setting.key == key).first()
    if row is None:
        row = Setting(key=key, value=value)
        db.add(row)
    else:
        row.value = value
    db.commit()
    db.refresh(row)
    return row


def get_stored_tokens(db: Session) -> dict[str, Any] | None:
    raw = get_setting(db, GOOGLE_TOKENS_KEY)
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except Exception:
        return None
    return data if isinstance(data, dict) else None


def save_tokens(db: Session, tokens: dict[str, Any]) -> None:
    set_setting(db, GOOGLE_TOKENS_KEY, json.dumps(tokens or {}, ensure_ascii=False))
