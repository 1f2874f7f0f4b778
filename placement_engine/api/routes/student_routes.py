"""
Student Routes

PUT /students/transcript - Upload or update transcript
GET /students/transcript - Get own transcript
GET /students/applications - Get my applications
POST /students/applications - Apply to a course
GET /students/admissions - Applications currently holding an offer
POST /students/select-admission - Accept one offer, release the others
GET /students/waiting-list/{institution_id} - Waiting list position
GET /students/matching-jobs - Jobs I qualify for
"""

from fastapi import APIRouter, Depends
from typing import List

from placement_engine.core.auth import get_current_student
from placement_engine.core.exceptions import NotFound
from placement_engine.db import get_record_store
from placement_engine.db.store import RecordStore
from placement_engine.services.allocation_service import AllocationService
from placement_engine.services.job_matching_service import JobMatchingService
from placement_engine.services.profile_service import ProfileService
from placement_engine.schemas.schemas import (
    Application, ApplicationCreate, CandidateProfile, CreatedResponse,
    JobMatch, SelectAdmissionRequest, SelectionResult, TranscriptUpload,
    WaitingListPosition
)

router = APIRouter(prefix="/students", tags=["Students"])


@router.put("/transcript", response_model=CandidateProfile)
def upload_transcript(
    data: TranscriptUpload,
    student: dict = Depends(get_current_student),
    store: RecordStore = Depends(get_record_store)
):
    """Upload transcript. Omitted fields keep their stored value."""
    return ProfileService(store).upload_transcript(student["user_id"], data)


@router.get("/transcript", response_model=CandidateProfile)
def get_transcript(
    student: dict = Depends(get_current_student),
    store: RecordStore = Depends(get_record_store)
):
    profile = ProfileService(store).get_profile(student["user_id"])
    if profile is None:
        raise NotFound("Transcript", student["user_id"])
    return profile


@router.get("/applications", response_model=List[Application])
def get_applications(
    student: dict = Depends(get_current_student),
    store: RecordStore = Depends(get_record_store)
):
    return AllocationService(store).student_applications(student["user_id"])


@router.post("/applications", response_model=CreatedResponse, status_code=201)
def apply(
    data: ApplicationCreate,
    student: dict = Depends(get_current_student),
    store: RecordStore = Depends(get_record_store)
):
    """
    Apply to a course.

    Rules:
    - At most 2 applications per institution (any status)
    - Not allowed once admitted elsewhere
    - Transcript must meet the course requirements
    """
    application_id = AllocationService(store).submit_application(
        student_id=student["user_id"],
        institution_id=data.institution_id,
        course_id=data.course_id,
        docs=data.docs
    )
    return CreatedResponse(id=application_id, message="Application submitted successfully")


@router.get("/admissions", response_model=List[Application])
def get_admissions(
    student: dict = Depends(get_current_student),
    store: RecordStore = Depends(get_record_store)
):
    return AllocationService(store).student_admissions(student["user_id"])


@router.post("/select-admission", response_model=SelectionResult)
def select_admission(
    data: SelectAdmissionRequest,
    student: dict = Depends(get_current_student),
    store: RecordStore = Depends(get_record_store)
):
    """Accept the chosen offer. Seats elsewhere go to the next waiting student."""
    return AllocationService(store).select_admission(student["user_id"], data.selected_institution_id)


@router.get("/waiting-list/{institution_id}", response_model=WaitingListPosition)
def waiting_list_position(
    institution_id: str,
    student: dict = Depends(get_current_student),
    store: RecordStore = Depends(get_record_store)
):
    return AllocationService(store).waiting_list_position(student["user_id"], institution_id)


@router.get("/matching-jobs", response_model=List[JobMatch])
def matching_jobs(
    student: dict = Depends(get_current_student),
    store: RecordStore = Depends(get_record_store)
):
    return JobMatchingService(store).matching_jobs(student["user_id"])
