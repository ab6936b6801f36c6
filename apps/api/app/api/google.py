import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.drive import list_drive_videos
from app.services.google_auth import GoogleAuthRequired, build_auth_url, exchange_code, has_tokens
from app.services.metadata import suggest_metadata

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["google"])


class AuthExchangeRequest(BaseModel):
    code: str


class MetadataSuggestion(BaseModel):
    title: str
    description: str
    tags: list[str] = []
    hashtags: list[str] = []


@router.get("/auth/url")
def auth_url():
    try:
        return {"ok": True, "url": build_auth_url()}
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/auth/exchange")
def auth_exchange(req: AuthExchangeRequest, db: Session = Depends(get_db)):
    try:
        exchange_code(db, req.code)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("OAuth code exchange failed")
        raise HTTPException(status_code=500, detail=str(e))
    return {"ok": True}


@router.get("/auth/status")
def auth_status(db: Session = Depends(get_db)):
    return {"ok": True, "connected": has_tokens(db)}


@router.get("/drive/videos")
def drive_videos(db: Session = Depends(get_db)):
    try:
        files = list_drive_videos(db)
    except GoogleAuthRequired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        logger.exception("Drive listing failed")
        raise HTTPException(status_code=502, detail=str(e))
    return {"ok": True, "files": files}


@router.get("/metadata/suggest", response_model=MetadataSuggestion)
def metadata_suggest(filename: str = Query(..., min_length=1)) -> MetadataSuggestion:
    return MetadataSuggestion(**suggest_metadata(filename))
