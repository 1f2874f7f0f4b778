"""
Job Matching Service

Matches candidate profiles (transcripts) against job requirement sets.

- find_qualified:   company view; every qualifying candidate ranked by the
                    primary (40/30/30) score, ties in scan order
- notify_qualified: one notification per qualifying candidate, carrying the
                    normalized score for display
- matching_jobs:    student view; every job the student qualifies for
- company_jobs, update_job, delete_job: posting management, owner only

The qualification filter is boolean (all present requirements met) and is
independent of either score.
"""

from datetime import datetime
from typing import List, Optional, Union

from placement_engine.core.exceptions import EngineError, NotFound, PermissionDenied
from placement_engine.core.logger import get_logger
from placement_engine.db.mongodb import COLLECTIONS
from placement_engine.db.store import RecordStore
from placement_engine.schemas.schemas import (
    Job,
    JobCreate,
    JobMatch,
    JobStatus,
    JobUpdate,
    QualifiedCandidate,
)
from placement_engine.services.notification_service import NotificationService, NotificationSink
from placement_engine.services.profile_service import ProfileService
from placement_engine.services.scoring_service import (
    meets_requirements,
    normalized_score,
    primary_score,
    rank_candidates,
)

logger = get_logger()

JOBS = COLLECTIONS["jobs"]


class JobMatchingService:
    def __init__(self, store: RecordStore, sink: Optional[NotificationSink] = None):
        self.store = store
        self.sink = sink or NotificationService(store)
        self.profiles = ProfileService(store)

    def get_job(self, job_id: str) -> Job:
        doc = self.store.get(JOBS, job_id)
        if doc is None:
            raise NotFound("Job", job_id)
        return Job(**doc)

    def owned_job(self, company_id: str, job_id: str) -> Job:
        """
        Raises:
            NotFound: unknown job
            PermissionDenied: the job belongs to another company
        """
        job = self.get_job(job_id)
        if job.company_id != company_id:
            raise PermissionDenied("Not your job posting")
        return job

    def _resolve(self, job: Union[str, Job]) -> Job:
        return self.get_job(job) if isinstance(job, str) else job

    def find_qualified(self, job: Union[str, Job]) -> List[QualifiedCandidate]:
        """Qualifying candidates, best primary score first."""
        job = self._resolve(job)
        qualified = [
            profile for profile in self.profiles.all_profiles()
            if meets_requirements(profile, job.requirements)
        ]
        ranked = rank_candidates(qualified, lambda p: p, job.requirements, strategy="primary")
        return [
            QualifiedCandidate(student_id=profile.student_id, transcript=profile, match_score=match)
            for profile, match in ranked
        ]

    def notify_qualified(self, job: Union[str, Job]) -> int:
        """
        Send a job-match notification to every qualifying candidate.

        A failed send is logged and the scan continues.

        Returns:
            Number of notifications sent
        """
        job = self._resolve(job)
        sent = 0
        for profile in self.profiles.all_profiles():
            if not meets_requirements(profile, job.requirements):
                continue
            try:
                self.sink.send(
                    recipient=profile.student_id,
                    job_id=job.id,
                    job_title=job.title,
                    company_name=job.company_name,
                    message=f"New job matching your profile: {job.title} at {job.company_name}",
                    match_score=normalized_score(profile, job.requirements),
                )
                sent += 1
            except EngineError as e:
                logger.error(
                    "Job notification failed",
                    job_id=job.id,
                    student_id=profile.student_id,
                    error=e.message,
                )

        logger.info("Qualified candidates notified", job_id=job.id, sent=sent)
        return sent

    def matching_jobs(self, student_id: str) -> List[JobMatch]:
        """
        Active jobs the student qualifies for, best primary score first.

        Raises:
            NotFound: student has not uploaded a transcript
        """
        profile = self.profiles.get_profile(student_id)
        if profile is None:
            raise NotFound("Transcript", student_id)

        jobs = [Job(**doc) for doc in self.store.find(JOBS, where={"status": JobStatus.active.value})]
        eligible = [job for job in jobs if meets_requirements(profile, job.requirements)]
        ranked = [(job, primary_score(profile, job.requirements)) for job in eligible]
        ranked.sort(key=lambda pair: pair[1], reverse=True)
        return [JobMatch(job=job, match_score=match) for job, match in ranked]

    def post_job(self, company_id: str, company_name: str, data: JobCreate) -> str:
        """Store a job posting and notify qualifying candidates."""
        job = Job(
            company_id=company_id,
            company_name=company_name or "Unknown Company",
            posted_at=datetime.utcnow(),
            status=JobStatus.active,
            **data.model_dump(),
        )
        job_id = self.store.insert(JOBS, job.model_dump(exclude={"id"}))
        job.id = job_id
        logger.info("Job posted", job_id=job_id, company_id=company_id)

        try:
            self.notify_qualified(job)
        except EngineError as e:
            logger.error("Could not notify qualified candidates", job_id=job_id, error=e.message)
        return job_id

    def company_jobs(self, company_id: str) -> List[Job]:
        """Every posting of the company, newest first."""
        jobs = [Job(**doc) for doc in self.store.find(JOBS, where={"company_id": company_id})]
        jobs.sort(key=lambda job: job.posted_at or datetime.min, reverse=True)
        return jobs

    def update_job(self, company_id: str, job_id: str, data: JobUpdate) -> Job:
        """
        Overwrite the fields set in `data`. Candidates are not re-notified
        when requirements change.
        """
        changes = data.model_dump(exclude_none=True)
        with self.store.transaction() as tx:
            doc = tx.get(JOBS, job_id)
            if doc is None:
                raise NotFound("Job", job_id)
            if doc["company_id"] != company_id:
                raise PermissionDenied("Not your job posting")
            changes["updated_at"] = datetime.utcnow()
            tx.update(JOBS, job_id, changes)

        logger.info("Job updated", job_id=job_id, company_id=company_id)
        return self.get_job(job_id)

    def delete_job(self, company_id: str, job_id: str):
        """Remove a posting. Notifications already sent are kept."""
        self.owned_job(company_id, job_id)
        self.store.delete(JOBS, job_id)
        logger.info("Job deleted", job_id=job_id, company_id=company_id)
