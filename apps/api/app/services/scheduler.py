"""
Single-flight upload scheduler.

Mutual exclusion lives in the database (a job row in status "Uploading"),
not in process memory, so it survives restarts. It does NOT protect
against two scheduler processes running against the same store: deploy
exactly one worker (concurrency=1) on the scheduler queue.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.models.job import JOB_DONE, JOB_FAILED, JOB_UPLOADING
from app.services.jobs import (
    claim_job,
    find_active_job,
    find_earliest_due_pending,
    find_jobs_by_status,
    reset_uploading_jobs,
    set_job_status,
)
from app.services.notifications import OUTCOME_FAILURE, OUTCOME_SUCCESS, notify
from app.services.upload_pipeline import UploadRequest

logger = logging.getLogger(__name__)

INTERRUPTED_ERROR = "Interrupted by restart"

TICK_BUSY = "busy"
TICK_IDLE = "idle"
TICK_DONE = "done"
TICK_FAILED = "failed"
TICK_STORE_ERROR = "store_error"

UploadFn = Callable[[UploadRequest], str]
NotifyFn = Callable[[str, str | None, str | None], None]


@dataclass
class TickResult:
    outcome: str
    job_id: int | None = None
    detail: str | None = None

    def as_dict(self) -> dict:
        return {"outcome": self.outcome, "job_id": self.job_id, "detail": self.detail}


def _error_message(e: Exception) -> str:
    return str(e) or e.__class__.__name__


def _notify_safely(notify_fn: NotifyFn, outcome: str, title: str | None, detail: str | None) -> None:
    try:
        notify_fn(outcome, title, detail)
    except Exception:
        logger.exception("[Job Manager] Notification hook failed (ignored)")


def _persist_final(
    db: Session,
    session_factory: Callable[[], Session],
    job_id: int,
    status: str,
    **fields,
) -> bool:
    """
    Write the terminal state. The upload may have left `db` mid-transaction or
    poisoned, so roll back first; on a store error retry once on a fresh session.
    Returns False if both attempts failed (the row stays "Uploading" until recovery).
    """
    try:
        db.rollback()
        set_job_status(db, job_id, status, **fields)
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[Job Manager] Could not store %s for job %s; retrying", status, job_id)

    fresh = session_factory()
    try:
        set_job_status(fresh, job_id, status, **fields)
        return True
    except SQLAlchemyError:
        fresh.rollback()
        logger.exception("[Job Manager] Retry failed; job %s left Uploading", job_id)
        return False
    finally:
        fresh.close()


def run_tick(
    db: Session,
    *,
    upload: UploadFn,
    notify_fn: NotifyFn = notify,
    now: datetime | None = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> TickResult:
    # 1-3) pick + checkpoint; nothing is mutated before the claim commits
    try:
        active = find_active_job(db)
        if active is not None:
            return TickResult(TICK_BUSY, job_id=active.id)

        job = find_earliest_due_pending(db, now)
        if job is None:
            return TickResult(TICK_IDLE)

        if not claim_job(db, job.id):
            # deleted or edited away between select and claim
            return TickResult(TICK_IDLE, detail=f"job {job.id} no longer pending")

        # edits committed before the claim must be what gets uploaded
        db.refresh(job)
        request = UploadRequest.from_job(job)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[Job Manager] Store error; tick skipped")
        return TickResult(TICK_STORE_ERROR, detail=_error_message(e))

    logger.info("[Job Manager] Picked job: %s (%s)", request.title, request.job_id)

    # 4) remote upload (long-running)
    try:
        video_id = upload(request)
    except Exception as e:
        err = _error_message(e)
        logger.error("[Job Manager] Upload error for job %s: %s", request.job_id, err)
        # 5) commit final state, then notify
        stored = _persist_final(db, session_factory, request.job_id, JOB_FAILED, error=err)
        _notify_safely(notify_fn, OUTCOME_FAILURE, request.title, err)
        if not stored:
            return TickResult(TICK_STORE_ERROR, job_id=request.job_id, detail=err)
        return TickResult(TICK_FAILED, job_id=request.job_id, detail=err)

    stored = _persist_final(db, session_factory, request.job_id, JOB_DONE, error=None, youtube_id=video_id)
    logger.info("[Job Manager] Job %s done, YouTube id %s", request.job_id, video_id)
    _notify_safely(notify_fn, OUTCOME_SUCCESS, request.title, f"https://youtu.be/{video_id}")
    if not stored:
        return TickResult(TICK_STORE_ERROR, job_id=request.job_id, detail=video_id)
    return TickResult(TICK_DONE, job_id=request.job_id, detail=video_id)


def recover_interrupted_jobs(db: Session) -> int:
    """
    Startup recovery: any job left "Uploading" by a crashed process goes back
    to "Pending" with a diagnostic error. Running it again is a no-op.
    Must run before the first tick, or the stale row blocks the scheduler forever.
    """
    stuck = [j.id for j in find_jobs_by_status(db, JOB_UPLOADING)]
    if not stuck:
        return 0
    count = reset_uploading_jobs(db, INTERRUPTED_ERROR)
    logger.warning("Reset %s stuck upload(s) to Pending: %s", count, stuck)
    return count
