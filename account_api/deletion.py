# account_api/deletion.py
"""Delayed account deletion.

A confirmed deletion request only marks the user and stores a job keyed by the
user id. DeletionWorker picks up jobs once their grace period is over and
removes the user together with the liked items stored under the user's email.
The outcome is only logged; the request that scheduled the job is long gone.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from . import models
from .core.config import settings
from .crud import DeletionJobRepository, LikedItemRepository, UserRepository

logger = logging.getLogger(__name__)


def utcnow():
    return datetime.now(timezone.utc)


class DeletionScheduler:
    def __init__(self, db: Session, grace: timedelta | None = None):
        self.jobs = DeletionJobRepository(db)
        if grace is None:
            grace = timedelta(minutes=settings.DELETION_GRACE_MINUTES)
        self.grace = grace

    def schedule(self, user: models.User) -> models.DeletionJob:
        """Queue deletion of ``user``; a pending job for the same user is reused."""
        job = self.jobs.find_by_user(user.id)
        if job is None:
            job = self.jobs.insert(user_id=user.id, email=user.email, run_at=utcnow() + self.grace)
            logger.info("Scheduled deletion of user %s at %s", user.id, job.run_at)
            return job

        if job.status == models.DeletionJob.PENDING:
            return job

        job = self.jobs.update(
            job,
            email=user.email,
            run_at=utcnow() + self.grace,
            status=models.DeletionJob.PENDING,
            last_error=None,
            completed_at=None,
        )
        logger.info("Rescheduled deletion of user %s at %s", user.id, job.run_at)
        return job

    def cancel(self, user_id: str) -> bool:
        job = self.jobs.find_by_user(user_id)
        if job is None or job.status != models.DeletionJob.PENDING:
            return False
        self.jobs.update(job, status=models.DeletionJob.CANCELLED)
        logger.info("Cancelled deletion of user %s", user_id)
        return True


def purge_account(db: Session, job: models.DeletionJob) -> None:
    users = UserRepository(db)
    removed = users.delete(id=job.user_id)
    liked = LikedItemRepository(db).delete_by_email(job.email)
    if not liked:
        logger.info("%s has no liked items", job.email)
    logger.info("Deleted user %s (%d row) and %d liked items", job.user_id, removed, liked)


class DeletionWorker:
    def __init__(self, session_factory, poll_interval: float | None = None):
        self.session_factory = session_factory
        if poll_interval is None:
            poll_interval = settings.DELETION_POLL_SECONDS
        self.poll_interval = poll_interval

    def run_due(self, now: datetime | None = None) -> int:
        """Execute every pending job whose grace period has passed. Returns the number completed."""
        now = now or utcnow()
        completed = 0
        with self.session_factory() as db:
            jobs = DeletionJobRepository(db)
            for job in jobs.find_due(now):
                try:
                    purge_account(db, job)
                except Exception as e:
                    db.rollback()
                    logger.exception("Deletion of user %s failed", job.user_id)
                    jobs.update(job, status=models.DeletionJob.FAILED, last_error=str(e))
                    continue
                jobs.update(job, status=models.DeletionJob.DONE, completed_at=utcnow())
                completed += 1
        return completed

    async def run_forever(self):
        logger.info("Deletion worker started, polling every %ss", self.poll_interval)
        while True:
            try:
                await asyncio.to_thread(self.run_due)
            except Exception:
                logger.exception("Deletion worker pass failed")
            await asyncio.sleep(self.poll_interval)
