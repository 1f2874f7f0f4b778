"""
Pydantic Schemas - Records and Request/Response Validation

All engine records and API schemas in one file for simplicity.
Records are stored as `model_dump()` output; `id` is the record key.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    admin = "admin"
    institute = "institute"
    student = "student"
    company = "company"


class ApplicationStatus(str, Enum):
    pending = "pending"
    admitted = "admitted"
    accepted = "accepted"
    rejected = "rejected"


class JobType(str, Enum):
    full_time = "full-time"
    part_time = "part-time"
    contract = "contract"
    internship = "internship"


class JobStatus(str, Enum):
    active = "active"
    closed = "closed"


class NotificationType(str, Enum):
    job_match = "JOB_MATCH"


# ============================================================
# CANDIDATE PROFILE (TRANSCRIPT)
# ============================================================

class Certificate(BaseModel):
    name: str
    issuer: Optional[str] = None
    date: Optional[datetime] = None


class WorkExperience(BaseModel):
    years: float = Field(0, ge=0)
    company: Optional[str] = None
    position: Optional[str] = None


class CandidateProfile(BaseModel):
    student_id: str
    gpa: float = Field(..., ge=0, le=4)
    certificates: List[Certificate] = []
    work_experience: List[WorkExperience] = []
    field_of_study: Optional[str] = None
    upload_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TranscriptUpload(BaseModel):
    gpa: float = Field(..., ge=0, le=4)
    certificates: Optional[List[Certificate]] = None
    work_experience: Optional[List[WorkExperience]] = None
    field_of_study: Optional[str] = None


# ============================================================
# REQUIREMENTS / CATALOG
# ============================================================

class RequirementSet(BaseModel):
    min_gpa: Optional[float] = Field(None, ge=0, le=4)
    experience_years: Optional[float] = Field(None, ge=0)
    certificates: List[str] = []
    relevant_fields: List[str] = []


class Course(BaseModel):
    id: Optional[str] = None
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    requirements: RequirementSet = RequirementSet()


class Faculty(BaseModel):
    name: str
    description: Optional[str] = None
    courses: List[Course] = []


class Institution(BaseModel):
    id: Optional[str] = None
    name: str
    location: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    faculties: List[Faculty] = []
    created_by: Optional[str] = None


class InstitutionCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    location: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None


class InstitutionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    location: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None


class FacultyCreate(BaseModel):
    name: str = Field(..., min_length=2)
    description: Optional[str] = None


class CourseCreate(BaseModel):
    name: str = Field(..., min_length=2)
    code: Optional[str] = None
    description: Optional[str] = None
    requirements: RequirementSet = RequirementSet()


# ============================================================
# APPLICATIONS / ADMISSIONS
# ============================================================

class Application(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    student_id: str
    institution_id: str
    course_id: str
    status: ApplicationStatus = ApplicationStatus.pending
    applied_at: datetime
    updated_at: Optional[datetime] = None
    student_gpa: Optional[float] = None
    course_name: Optional[str] = None
    institution_name: Optional[str] = None
    docs: List[str] = []


class ApplicationCreate(BaseModel):
    institution_id: str
    course_id: str
    docs: List[str] = []


class Admission(BaseModel):
    id: Optional[str] = None
    institution_id: str
    course_id: str
    institution_name: Optional[str] = None
    course_name: Optional[str] = None
    admitted_students: List[str] = []
    waiting_list: List[str] = []
    published: bool = True
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublishAdmissionRequest(BaseModel):
    institution_id: str
    course_id: str
    admitted_students: List[str] = []
    waiting_list: List[str] = []


class SelectAdmissionRequest(BaseModel):
    selected_institution_id: str


class SelectionResult(BaseModel):
    accepted_institution_id: str
    released: List[str] = []
    promotions: Dict[str, str] = {}


class WaitingListPosition(BaseModel):
    position: int
    total_waiting: int
    institution_name: Optional[str] = None
    course_name: Optional[str] = None


# ============================================================
# JOBS
# ============================================================

class Job(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    company_id: str
    company_name: str = "Unknown Company"
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    type: JobType = JobType.full_time
    requirements: RequirementSet = RequirementSet()
    status: JobStatus = JobStatus.active
    posted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    description: str
    location: str
    type: JobType = JobType.full_time
    requirements: RequirementSet


class JobUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    type: Optional[JobType] = None
    requirements: Optional[RequirementSet] = None
    status: Optional[JobStatus] = None


class QualifiedCandidate(BaseModel):
    student_id: str
    transcript: CandidateProfile
    match_score: float


class JobMatch(BaseModel):
    job: Job
    match_score: float


# ============================================================
# NOTIFICATIONS
# ============================================================

class Notification(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    user_id: str
    type: NotificationType = NotificationType.job_match
    job_id: str
    job_title: str
    company_name: str
    message: str
    match_score: Optional[float] = None
    created_at: datetime
    read: bool = False
    read_at: Optional[datetime] = None


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class CreatedResponse(BaseModel):
    id: str
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    detail: str
