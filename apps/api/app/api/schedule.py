from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.services.jobs import (
    JobNotPending,
    bulk_create_jobs,
    create_job,
    delete_if_pending,
    job_to_dict,
    list_recent_jobs,
    update_pending_job,
)
from app.services.schedule_expander import ScheduleValidationError, expand_bulk_schedule

router = APIRouter(prefix="/api/schedule", tags=["schedule"])


class ScheduleCreateRequest(BaseModel):
    drive_file_id: str
    scheduled_time: datetime
    title: str | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)
    thumbnail: str | None = None  # data URL
    first_comment: str | None = None


class BulkScheduleRequest(BaseModel):
    # either weekday/time slots for one file ...
    drive_file_id: str | None = None
    days: list[int] = Field(default_factory=list)  # Sunday=0 .. Saturday=6
    times: list[str] = Field(default_factory=list)  # "HH:MM"
    timezone: str | None = None
    title: str | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)
    thumbnail: str | None = None
    first_comment: str | None = None

    # ... or already expanded schedules
    schedules: list[ScheduleCreateRequest] | None = None


class ScheduleUpdateRequest(BaseModel):
    scheduled_time: datetime | None = None
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    hashtags: list[str] | None = None
    thumbnail: str | None = None
    first_comment: str | None = None


@router.get("")
def list_schedule(
    db: Session = Depends(get_db),
    limit: int | None = Query(default=None, ge=1, le=500),
):
    rows = list_recent_jobs(db, limit=limit or settings.schedule_recent_limit)
    return {"ok": True, "jobs": [job_to_dict(j) for j in rows]}


@router.post("")
def create_schedule(req: ScheduleCreateRequest, db: Session = Depends(get_db)):
    if not req.drive_file_id.strip():
        raise HTTPException(status_code=400, detail="drive_file_id is required")
    job = create_job(db, **req.model_dump())
    return {"ok": True, "job": job_to_dict(job)}


@router.post("/bulk")
def create_bulk_schedule(req: BulkScheduleRequest, db: Session = Depends(get_db)):
    if req.schedules is not None:
        if not req.schedules:
            raise HTTPException(status_code=400, detail="schedules is empty")
        requests = [s.model_dump() for s in req.schedules]
    else:
        base = {
            "drive_file_id": (req.drive_file_id or "").strip(),
            "title": req.title,
            "description": req.description,
            "tags": req.tags,
            "hashtags": req.hashtags,
            "thumbnail": req.thumbnail,
            "first_comment": req.first_comment,
        }
        try:
            requests = expand_bulk_schedule(
                req.days,
                req.times,
                base,
                tz=req.timezone or settings.schedule_default_tz,
            )
        except ScheduleValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

    jobs = bulk_create_jobs(db, requests)
    return {"ok": True, "count": len(jobs), "jobs": [job_to_dict(j) for j in jobs]}


@router.patch("/{job_id}")
def update_schedule(job_id: int, req: ScheduleUpdateRequest, db: Session = Depends(get_db)):
    try:
        job = update_pending_job(db, job_id, req.model_dump(exclude_unset=True))
    except JobNotPending as e:
        raise HTTPException(status_code=409, detail=str(e))
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return {"ok": True, "job": job_to_dict(job)}


@router.delete("/{job_id}")
def delete_schedule(job_id: int, db: Session = Depends(get_db)):
    # Uploading/Done/Failed jobs are left untouched
    deleted = delete_if_pending(db, job_id)
    return {"ok": True, "deleted": deleted}
