from __future__ import annotations

import logging
from typing import Any, BinaryIO

from sqlalchemy.orm import Session

from app.services.google_auth import load_credentials

logger = logging.getLogger(__name__)

VIDEO_QUERY = "mimeType contains 'video/' and trashed = false"
LIST_FIELDS = "nextPageToken, files(id, name, thumbnailLink, size, mimeType)"


def build_drive_service(creds) -> Any:
    from googleapiclient.discovery import build

    return build("drive", "v3", credentials=creds, cache_discovery=False)


def list_drive_videos(db: Session, *, max_items: int = 200) -> list[dict[str, Any]]:
    """
    Video files in the connected Drive, newest first:
      [{"id", "name", "thumbnailLink", "size", "mimeType"}]
    """
    drive = build_drive_service(load_credentials(db))

    files: list[dict[str, Any]] = []
    page_token = None
    while True:
        resp = (
            drive.files()
            .list(
                q=VIDEO_QUERY,
                fields=LIST_FIELDS,
                orderBy="createdTime desc",
                pageSize=min(100, max_items),
                pageToken=page_token,
            )
            .execute()
        )
        files.extend(resp.get("files") or [])
        page_token = resp.get("nextPageToken")
        if not page_token or len(files) >= max_items:
            break

    return files[:max_items]


def download_drive_file(drive: Any, file_id: str, fh: BinaryIO, *, chunk_size: int = 8 * 1024 * 1024) -> int:
    """Stream a Drive file into `fh`. Returns bytes written; leaves `fh` rewound."""
    from googleapiclient.http import MediaIoBaseDownload

    req = drive.files().get_media(fileId=file_id, supportsAllDrives=True)
    downloader = MediaIoBaseDownload(fh, req, chunksize=chunk_size)

    done = False
    while not done:
        status, done = downloader.next_chunk()
        if status is not None:
            logger.debug("[Drive] %s download %.0f%%", file_id, status.progress() * 100)

    size = fh.tell()
    fh.seek(0)
    return size
