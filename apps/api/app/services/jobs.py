from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from app.models.job import JOB_PENDING, JOB_STATUSES, JOB_UPLOADING, Job


class JobNotPending(Exception):
    """Raised when an edit targets a job that already left the Pending state."""

    def __init__(self, job_id: int, status: str) -> None:
        super().__init__(f"Job {job_id} is {status}; only Pending jobs can be changed")
        self.job_id = job_id
        self.status = status


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """
    Normalize to an aware UTC datetime.
    Naive values are treated as UTC (SQLite hands timestamps back without tzinfo).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _dump_list(values: Iterable[str] | None) -> str:
    return json.dumps([str(v) for v in (values or []) if str(v).strip()], ensure_ascii=False)


def _load_list(raw: str | None) -> list[str]:
    try:
        data = json.loads(raw or "[]")
    except Exception:
        return []
    if not isinstance(data, list):
        return []
    return [str(v) for v in data]


def job_tags(job: Job) -> list[str]:
    return _load_list(job.tags_json)


def job_hashtags(job: Job) -> list[str]:
    return _load_list(job.hashtags_json)


def _new_job(
    *,
    drive_file_id: str,
    scheduled_time: datetime,
    title: str | None = None,
    description: str | None = None,
    tags: Iterable[str] | None = None,
    hashtags: Iterable[str] | None = None,
    thumbnail: str | None = None,
    first_comment: str | None = None,
) -> Job:
    return Job(
        drive_file_id=drive_file_id,
        title=title,
        description=description,
        tags_json=_dump_list(tags),
        hashtags_json=_dump_list(hashtags),
        thumbnail=thumbnail or None,
        first_comment=(first_comment or "").strip() or None,
        scheduled_time=as_utc(scheduled_time),
        status=JOB_PENDING,
    )


def create_job(db: Session, **fields: Any) -> Job:
    job = _new_job(**fields)
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def bulk_create_jobs(db: Session, requests: Iterable[dict[str, Any]]) -> list[Job]:
    jobs = [_new_job(**r) for r in requests]
    db.add_all(jobs)
    db.commit()
    for job in jobs:
        db.refresh(job)
    return jobs


def get_job(db: Session, job_id: int) -> Job | None:
    return db.query(Job).filter(Job.id == job_id).first()


def find_jobs_by_status(db: Session, status: str) -> list[Job]:
    return db.query(Job).filter(Job.status == status).order_by(Job.scheduled_time.asc()).all()


def find_active_job(db: Session) -> Job | None:
    return db.query(Job).filter(Job.status == JOB_UPLOADING).first()


def find_earliest_due_pending(db: Session, now: datetime | None = None) -> Job | None:
    now = as_utc(now or utcnow())
    return (
        db.query(Job)
        .filter(Job.status == JOB_PENDING, Job.scheduled_time <= now)
        .order_by(Job.scheduled_time.asc(), Job.id.asc())
        .first()
    )


def claim_job(db: Session, job_id: int) -> bool:
    """
    Pending -> Uploading as a single conditional UPDATE, committed immediately.
    Returns False if the row was deleted or changed state in between.
    """
    res = db.execute(
        update(Job)
        .where(Job.id == job_id, Job.status == JOB_PENDING)
        .values(status=JOB_UPLOADING)
    )
    db.commit()
    return res.rowcount == 1


def set_job_status(
    db: Session,
    job_id: int,
    status: str,
    error: str | None = None,
    youtube_id: str | None = None,
) -> Job:
    if status not in JOB_STATUSES:
        raise ValueError(f"Unknown job status: {status!r}")
    job = db.query(Job).filter(Job.id == job_id).one()
    job.status = status
    job.error = error
    if youtube_id is not None:
        job.youtube_id = youtube_id
    db.commit()
    db.refresh(job)
    return job


def update_pending_job(db: Session, job_id: int, patch: dict[str, Any]) -> Job | None:
    """
    Apply `patch` only while the job is still Pending. The status check and the
    write are one conditional UPDATE, so an edit can't land on a claimed row.
    """
    values: dict[str, Any] = {}
    for k, v in (patch or {}).items():
        if k == "tags":
            values["tags_json"] = _dump_list(v)
        elif k == "hashtags":
            values["hashtags_json"] = _dump_list(v)
        elif k == "scheduled_time":
            if v is not None:
                values["scheduled_time"] = as_utc(v)
        elif k in ("title", "description", "thumbnail", "first_comment"):
            values[k] = v

    # status=Pending is a no-op write that still takes the guard
    values.setdefault("status", JOB_PENDING)
    res = db.execute(
        update(Job)
        .where(Job.id == job_id, Job.status == JOB_PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    job = get_job(db, job_id)
    if job is None:
        return None
    db.refresh(job)
    if res.rowcount != 1:
        raise JobNotPending(job.id, job.status)
    return job


def delete_if_pending(db: Session, job_id: int) -> bool:
    res = db.execute(delete(Job).where(Job.id == job_id, Job.status == JOB_PENDING))
    db.commit()
    return res.rowcount == 1


def list_recent_jobs(db: Session, limit: int = 50) -> list[Job]:
    return db.query(Job).order_by(Job.scheduled_time.desc(), Job.id.desc()).limit(limit).all()


def reset_uploading_jobs(db: Session, error: str) -> int:
    res = db.execute(
        update(Job)
        .where(Job.status == JOB_UPLOADING)
        .values(status=JOB_PENDING, error=error)
    )
    db.commit()
    return int(res.rowcount or 0)


def job_to_dict(job: Job) -> dict[str, Any]:
    return {
        "id": job.id,
        "drive_file_id": job.drive_file_id,
        "title": job.title,
        "description": job.description,
        "tags": job_tags(job),
        "hashtags": job_hashtags(job),
        "has_thumbnail": bool(job.thumbnail),
        "first_comment": job.first_comment,
        "scheduled_time": as_utc(job.scheduled_time).isoformat() if job.scheduled_time else None,
        "status": job.status,
        "youtube_id": job.youtube_id,
        "error": job.error,
        "created_at": job.created_at.isoformat() if job.created_at else None,
        "updated_at": job.updated_at.isoformat() if job.updated_at else None,
    }
