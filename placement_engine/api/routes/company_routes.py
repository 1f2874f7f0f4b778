"""
Company Routes

POST /company/jobs - Post a job (qualified students are notified)
GET /company/jobs - Own postings, newest first
PUT /company/jobs/{job_id} - Edit a posting
DELETE /company/jobs/{job_id} - Remove a posting
GET /company/jobs/{job_id}/qualified - Qualified candidates, best first
"""

from fastapi import APIRouter, Depends
from typing import List

from placement_engine.core.auth import get_current_company
from placement_engine.db import get_record_store
from placement_engine.db.store import RecordStore
from placement_engine.services.job_matching_service import JobMatchingService
from placement_engine.schemas.schemas import (
    CreatedResponse, Job, JobCreate, JobUpdate, MessageResponse, QualifiedCandidate
)

router = APIRouter(prefix="/company", tags=["Companies"])


@router.post("/jobs", response_model=CreatedResponse, status_code=201)
def post_job(
    data: JobCreate,
    company: dict = Depends(get_current_company),
    store: RecordStore = Depends(get_record_store)
):
    job_id = JobMatchingService(store).post_job(
        company_id=company["user_id"],
        company_name=company.get("name") or "Unknown Company",
        data=data
    )
    return CreatedResponse(id=job_id, message="Job posted successfully")


@router.get("/jobs", response_model=List[Job])
def get_company_jobs(
    company: dict = Depends(get_current_company),
    store: RecordStore = Depends(get_record_store)
):
    return JobMatchingService(store).company_jobs(company["user_id"])


@router.put("/jobs/{job_id}", response_model=Job)
def update_job(
    job_id: str,
    data: JobUpdate,
    company: dict = Depends(get_current_company),
    store: RecordStore = Depends(get_record_store)
):
    return JobMatchingService(store).update_job(company["user_id"], job_id, data)


@router.delete("/jobs/{job_id}", response_model=MessageResponse)
def delete_job(
    job_id: str,
    company: dict = Depends(get_current_company),
    store: RecordStore = Depends(get_record_store)
):
    JobMatchingService(store).delete_job(company["user_id"], job_id)
    return MessageResponse(message="Job deleted successfully")


@router.get("/jobs/{job_id}/qualified", response_model=List[QualifiedCandidate])
def qualified_candidates(
    job_id: str,
    company: dict = Depends(get_current_company),
    store: RecordStore = Depends(get_record_store)
):
    service = JobMatchingService(store)
    job = service.owned_job(company["user_id"], job_id)
    return service.find_qualified(job)
