from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import uuid

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from store_orchestrator.db.session import Database
from store_orchestrator.models.enums import JobStatus
from store_orchestrator.models.provisioning_job import ProvisioningJob

logger = logging.getLogger(__name__)

OPEN_STATUSES = (JobStatus.QUEUED, JobStatus.IN_PROGRESS)


@dataclass(frozen=True)
class ProvisionJob:
    store_id: str
    hostname: str
    type: str
    id: uuid.UUID | None = None
    attempt: int = 0


class WorkQueue:
    """Durable at-least-once job channel stored in ``provisioning_jobs``.

    Enqueue joins the caller's transaction so a store row and its job commit
    together. Leasing uses ``FOR UPDATE SKIP LOCKED`` so one message is handed
    to at most one consumer; a lease that outlives ``requeue_stale`` is
    redelivered.
    """

    def __init__(self, database: Database):
        self.database = database

    def enqueue(self, db: Session, job: ProvisionJob) -> ProvisioningJob:
        row = ProvisioningJob(
            store_id=job.store_id,
            hostname=job.hostname,
            engine=job.type,
            status=JobStatus.QUEUED,
        )
        db.add(row)
        db.flush()
        return row

    def lease(self, worker_id: str) -> ProvisionJob | None:
        now = datetime.now(timezone.utc)
        with self.database.session() as db:
            with db.begin():
                row = db.scalar(
                    select(ProvisioningJob)
                    .where(ProvisioningJob.status == JobStatus.QUEUED)
                    .order_by(ProvisioningJob.created_at.asc())
                    .with_for_update(skip_locked=True)
                    .limit(1)
                )
                if not row:
                    return None
                row.status = JobStatus.IN_PROGRESS
                row.locked_by = worker_id
                row.locked_at = now
                row.attempt += 1
                db.add(row)
                return ProvisionJob(
                    store_id=row.store_id, hostname=row.hostname, type=row.engine, id=row.id, attempt=row.attempt
                )

    def complete(self, db: Session, job_id: uuid.UUID, note: str | None = None) -> None:
        row = db.get(ProvisioningJob, job_id)
        if row is None:
            return
        row.status = JobStatus.DONE
        row.error_message = note
        row.locked_by = None
        row.completed_at = datetime.now(timezone.utc)
        db.add(row)

    def cancel_pending(self, db: Session, store_id: str) -> int:
        result = db.execute(
            update(ProvisioningJob)
            .where(ProvisioningJob.store_id == store_id, ProvisioningJob.status == JobStatus.QUEUED)
            .values(
                status=JobStatus.CANCELLED,
                error_message="cancelled_delete_requested",
                completed_at=datetime.now(timezone.utc),
            )
        )
        return result.rowcount or 0

    def has_open_job(self, db: Session, store_id: str) -> bool:
        return (
            db.scalar(
                select(ProvisioningJob.id)
                .where(ProvisioningJob.store_id == store_id, ProvisioningJob.status.in_(OPEN_STATUSES))
                .limit(1)
            )
            is not None
        )

    def requeue_stale(self, lease_seconds: int) -> int:
        lease_cutoff = datetime.now(timezone.utc) - timedelta(seconds=lease_seconds)
        with self.database.session() as db:
            stale_jobs = db.scalars(
                select(ProvisioningJob).where(
                    and_(
                        ProvisioningJob.status == JobStatus.IN_PROGRESS,
                        or_(ProvisioningJob.locked_at.is_(None), ProvisioningJob.locked_at < lease_cutoff),
                    )
                )
            ).all()
            for job in stale_jobs:
                job.status = JobStatus.QUEUED
                job.locked_by = None
                job.locked_at = None
            db.commit()
        if stale_jobs:
            logger.warning("Requeued %d provisioning jobs with expired leases", len(stale_jobs))
        return len(stale_jobs)
