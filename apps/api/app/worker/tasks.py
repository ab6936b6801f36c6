import logging

from celery.signals import worker_init
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logging_utils import setup_logging
from app.db.session import SessionLocal
from app.services.scheduler import recover_interrupted_jobs, run_tick
from app.services.upload_pipeline import UploadRequest, process_upload
from app.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def _upload_in_own_session(req: UploadRequest) -> str:
    # token refresh commits here; a failure must not poison the tick's session
    db: Session = SessionLocal()
    try:
        return process_upload(req, db=db)
    finally:
        db.close()


@celery_app.task(name="scheduler.tick")
def scheduler_tick() -> dict:
    db: Session = SessionLocal()
    try:
        result = run_tick(db, upload=_upload_in_own_session)
        return result.as_dict()
    finally:
        db.close()


@celery_app.task(name="scheduler.recover")
def scheduler_recover() -> dict:
    db: Session = SessionLocal()
    try:
        return {"ok": True, "reset": recover_interrupted_jobs(db)}
    finally:
        db.close()


@worker_init.connect
def _recover_on_worker_start(**_kwargs) -> None:
    # worker_init fires before the consumer starts, i.e. before the first tick runs
    setup_logging()
    if not settings.scheduler_recover_on_start:
        logger.info("Startup recovery disabled (SCHEDULER_RECOVER_ON_START=0)")
        return
    db: Session = SessionLocal()
    try:
        recover_interrupted_jobs(db)
    except Exception:
        logger.exception("Startup recovery failed")
        raise
    finally:
        db.close()
