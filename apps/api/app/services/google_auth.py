from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.services.settings_store import get_stored_tokens, save_tokens

logger = logging.getLogger(__name__)

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

SCOPES = [
    "https://www.googleapis.com/auth/drive.readonly",
    "https://www.googleapis.com/auth/youtube.upload",
    # comments + pinning
    "https://www.googleapis.com/auth/youtube.force-ssl",
]


class GoogleAuthRequired(RuntimeError):
    pass


def _client_config() -> dict[str, Any]:
    if not settings.google_client_id or not settings.google_client_secret:
        raise ValueError("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET are missing")
    return {
        "web": {
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": [settings.google_redirect_uri],
        }
    }


def _build_flow():
    from google_auth_oauthlib.flow import Flow

    # consent URL and code exchange happen in separate requests, so no PKCE verifier
    return Flow.from_client_config(
        _client_config(),
        scopes=SCOPES,
        redirect_uri=settings.google_redirect_uri,
        autogenerate_code_verifier=False,
    )


def build_auth_url() -> str:
    flow = _build_flow()
    url, _state = flow.authorization_url(access_type="offline", prompt="consent")
    return url


def credentials_to_dict(creds) -> dict[str, Any]:
    return json.loads(creds.to_json())


def exchange_code(db: Session, code: str) -> None:
    code = (code or "").strip()
    if not code:
        raise ValueError("code is required")
    flow = _build_flow()
    flow.fetch_token(code=code)
    save_tokens(db, credentials_to_dict(flow.credentials))
    logger.info("Google account connected; tokens stored")


def load_credentials(db: Session):
    """
    Credentials from the stored token bundle. Refreshes (and re-saves) expired tokens.
    """
    from google.auth.transport.requests import Request
    from google.oauth2.credentials import Credentials

    tokens = get_stored_tokens(db)
    if not tokens:
        raise GoogleAuthRequired("No tokens found. Please connect Google account.")

    try:
        creds = Credentials.from_authorized_user_info(tokens)
    except ValueError as e:
        raise GoogleAuthRequired(f"Stored Google tokens are unusable: {e}")

    if creds.expired and creds.refresh_token:
        logger.info("Refreshing Google access token")
        creds.refresh(Request())
        save_tokens(db, credentials_to_dict(creds))

    return creds


def has_tokens(db: Session) -> bool:
    return bool(get_stored_tokens(db))
