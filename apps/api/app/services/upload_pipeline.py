"""
Drive -> YouTube upload pipeline.

Steps (no rollback between them):
  1) download the Drive file into a spooled temp buffer
  2) videos.insert (resumable)
  3) thumbnails.set         (optional, failure is logged only)
  4) commentThreads.insert  (optional, failure is logged only)
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
import re
import tempfile
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.job import Job
from app.services.drive import build_drive_service, download_drive_file
from app.services.google_auth import load_credentials
from app.services.jobs import job_hashtags, job_tags
from app.services.metadata import DEFAULT_DESCRIPTION

logger = logging.getLogger(__name__)

TITLE_MAX = 100
DEFAULT_TITLE = "Untitled Video"
UPLOAD_CHUNK_BYTES = 8 * 1024 * 1024

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class UploadRequest:
    job_id: int
    drive_file_id: str
    title: str | None = None
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    hashtags: list[str] = field(default_factory=list)
    thumbnail: str | None = None
    first_comment: str | None = None

    @classmethod
    def from_job(cls, job: Job) -> "UploadRequest":
        return cls(
            job_id=job.id,
            drive_file_id=job.drive_file_id,
            title=job.title,
            description=job.description,
            tags=job_tags(job),
            hashtags=job_hashtags(job),
            thumbnail=job.thumbnail,
            first_comment=job.first_comment,
        )


def build_youtube_service(creds) -> Any:
    from googleapiclient.discovery import build

    return build("youtube", "v3", credentials=creds, cache_discovery=False)


def clip_title(title: str | None) -> str:
    t = " ".join((title or "").split())
    return (t or DEFAULT_TITLE)[:TITLE_MAX]


def build_description(description: str | None, hashtags: list[str]) -> str:
    desc = (description or "").strip() or DEFAULT_DESCRIPTION
    tags = ["#" + h.strip().lstrip("#") for h in hashtags if h.strip().lstrip("#")]
    missing = [t for t in tags if t.lower() not in desc.lower()]
    if missing:
        desc = f"{desc}\n\n{' '.join(missing)}"
    return desc


def build_video_body(req: UploadRequest) -> dict[str, Any]:
    snippet: dict[str, Any] = {
        "title": clip_title(req.title),
        "description": build_description(req.description, req.hashtags),
        "categoryId": settings.youtube_category_id,
    }
    if req.tags:
        snippet["tags"] = [t.strip().lstrip("#") for t in req.tags if t.strip()]
    return {
        "snippet": snippet,
        "status": {"privacyStatus": settings.youtube_privacy_status},
    }


def decode_data_url(value: str) -> tuple[str, bytes] | None:
    """
    'data:image/png;base64,....' -> ("image/png", b"...").
    Returns None for anything that isn't a base64 data URL.
    """
    m = _DATA_URL_RE.match((value or "").strip())
    if not m:
        return None
    try:
        raw = base64.b64decode(m.group("data"), validate=False)
    except (binascii.Error, ValueError):
        return None
    if not raw:
        return None
    return (m.group("mime") or "image/jpeg"), raw


def _insert_video(youtube: Any, body: dict[str, Any], fh: Any, mimetype: str) -> str:
    from googleapiclient.http import MediaIoBaseUpload

    media = MediaIoBaseUpload(fh, mimetype=mimetype, chunksize=UPLOAD_CHUNK_BYTES, resumable=True)
    req = youtube.videos().insert(part="snippet,status", body=body, media_body=media)

    resp = None
    while resp is None:
        status, resp = req.next_chunk()
        if status is not None:
            logger.info("[YouTube] Upload progress: %.2f MB", status.resumable_progress / 1024 / 1024)

    video_id = str((resp or {}).get("id") or "")
    if not video_id:
        raise RuntimeError(f"No video id in YouTube response: {resp}")
    return video_id


def set_thumbnail(youtube: Any, video_id: str, data_url: str) -> bool:
    from googleapiclient.http import MediaIoBaseUpload

    decoded = decode_data_url(data_url)
    if decoded is None:
        logger.warning("[YouTube] Thumbnail for %s is not a base64 data URL; skipped", video_id)
        return False
    mimetype, raw = decoded
    try:
        media = MediaIoBaseUpload(io.BytesIO(raw), mimetype=mimetype)
        youtube.thumbnails().set(videoId=video_id, media_body=media).execute()
        logger.info("[YouTube] Custom thumbnail set for: %s", video_id)
        return True
    except Exception as e:
        logger.error("[YouTube] Thumbnail set error for %s: %s", video_id, e)
        return False


def post_first_comment(youtube: Any, video_id: str, text: str) -> str | None:
    """
    Post a top-level comment and publish it.
    The Data API has no pin call, so pinning stays a manual step in YouTube Studio.
    """
    try:
        resp = (
            youtube.commentThreads()
            .insert(
                part="snippet",
                body={
                    "snippet": {
                        "videoId": video_id,
                        "topLevelComment": {"snippet": {"textOriginal": text}},
                    }
                },
            )
            .execute()
        )
        comment_id = resp["snippet"]["topLevelComment"]["id"]
        logger.info("[YouTube] Comment posted! ID: %s", comment_id)

        youtube.comments().setModerationStatus(id=comment_id, moderationStatus="published").execute()
        return comment_id
    except Exception as e:
        logger.error("[YouTube] Comment error for %s: %s", video_id, e)
        return None


def process_upload(req: UploadRequest, *, db: Session) -> str:
    """Run the full pipeline for one job; returns the YouTube video id."""
    creds = load_credentials(db)
    drive = build_drive_service(creds)
    youtube = build_youtube_service(creds)

    meta = drive.files().get(fileId=req.drive_file_id, fields="id, name, mimeType, size", supportsAllDrives=True).execute()
    mimetype = meta.get("mimeType") or "application/octet-stream"

    with tempfile.SpooledTemporaryFile(max_size=settings.upload_spool_max_bytes) as fh:
        logger.info("[Drive] Starting download for fileId: %s (%s)", req.drive_file_id, meta.get("name"))
        size = download_drive_file(drive, req.drive_file_id, fh)
        logger.info("[Drive] Downloaded %.2f MB", size / 1024 / 1024)

        body = build_video_body(req)
        logger.info("[YouTube] Starting upload for: %s", body["snippet"]["title"])
        video_id = _insert_video(youtube, body, fh, mimetype)
        logger.info("[YouTube] Video uploaded! ID: %s", video_id)

    if req.thumbnail:
        set_thumbnail(youtube, video_id, req.thumbnail)

    if req.first_comment:
        post_first_comment(youtube, video_id, req.first_comment)

    return video_id
