"""
Institution Routes

GET /institutions - List institutions
POST /institutions - Create institution
GET /institutions/{institution_id} - Get institution with faculties and courses
PUT /institutions/{institution_id} - Edit institution details
DELETE /institutions/{institution_id} - Remove institution
POST /institutions/{institution_id}/faculties - Add faculty
POST /institutions/{institution_id}/faculties/{faculty_name}/courses - Add course
PUT /institutions/{institution_id}/courses/{course_id}/requirements - Replace course requirements
POST /institutions/admissions/publish - Publish admitted + waiting lists

Every write is limited to the institute account that created the institution.
"""

from typing import List

from fastapi import APIRouter, Depends

from placement_engine.core.auth import get_current_institute
from placement_engine.db import get_record_store
from placement_engine.db.store import RecordStore
from placement_engine.services.allocation_service import AllocationService
from placement_engine.services.catalog_service import CourseCatalog
from placement_engine.schemas.schemas import (
    Course, CourseCreate, CreatedResponse, FacultyCreate, Institution,
    InstitutionCreate, InstitutionUpdate, MessageResponse, PublishAdmissionRequest,
    RequirementSet
)

router = APIRouter(prefix="/institutions", tags=["Institutions"])


@router.post("/admissions/publish", response_model=CreatedResponse, status_code=201)
def publish_admission(
    data: PublishAdmissionRequest,
    user: dict = Depends(get_current_institute),
    store: RecordStore = Depends(get_record_store)
):
    """
    Publish an admission outcome.

    `waiting_list` is stored in the order given; seats released later are
    offered front to back.
    """
    admission_id = AllocationService(store).publish_admission(
        institution_id=data.institution_id,
        course_id=data.course_id,
        admitted_students=data.admitted_students,
        waiting_list=data.waiting_list,
        published_by=user["user_id"]
    )
    return CreatedResponse(id=admission_id, message="Admissions published successfully")


@router.get("", response_model=List[Institution])
def list_institutions(store: RecordStore = Depends(get_record_store)):
    """Public - no auth required."""
    return CourseCatalog(store).list_institutions()


@router.post("", response_model=CreatedResponse, status_code=201)
def create_institution(
    data: InstitutionCreate,
    user: dict = Depends(get_current_institute),
    store: RecordStore = Depends(get_record_store)
):
    institution_id = CourseCatalog(store).create_institution(data, created_by=user["user_id"])
    return CreatedResponse(id=institution_id, message="Institution created successfully")


@router.get("/{institution_id}", response_model=Institution)
def get_institution(institution_id: str, store: RecordStore = Depends(get_record_store)):
    """Public - no auth required."""
    return CourseCatalog(store).get_institution(institution_id)


@router.put("/{institution_id}", response_model=Institution)
def update_institution(
    institution_id: str,
    data: InstitutionUpdate,
    user: dict = Depends(get_current_institute),
    store: RecordStore = Depends(get_record_store)
):
    return CourseCatalog(store).update_institution(institution_id, data, updated_by=user["user_id"])


@router.delete("/{institution_id}", response_model=MessageResponse)
def delete_institution(
    institution_id: str,
    user: dict = Depends(get_current_institute),
    store: RecordStore = Depends(get_record_store)
):
    CourseCatalog(store).delete_institution(institution_id, deleted_by=user["user_id"])
    return MessageResponse(message="Institution deleted successfully")


@router.post("/{institution_id}/faculties", response_model=MessageResponse, status_code=201)
def add_faculty(
    institution_id: str,
    data: FacultyCreate,
    user: dict = Depends(get_current_institute),
    store: RecordStore = Depends(get_record_store)
):
    CourseCatalog(store).add_faculty(institution_id, data, updated_by=user["user_id"])
    return MessageResponse(message="Faculty added successfully")


@router.post("/{institution_id}/faculties/{faculty_name}/courses", response_model=CreatedResponse, status_code=201)
def add_course(
    institution_id: str,
    faculty_name: str,
    data: CourseCreate,
    user: dict = Depends(get_current_institute),
    store: RecordStore = Depends(get_record_store)
):
    course_id = CourseCatalog(store).add_course(institution_id, faculty_name, data, updated_by=user["user_id"])
    return CreatedResponse(id=course_id, message="Course added successfully")


@router.put("/{institution_id}/courses/{course_id}/requirements", response_model=Course)
def update_course_requirements(
    institution_id: str,
    course_id: str,
    data: RequirementSet,
    user: dict = Depends(get_current_institute),
    store: RecordStore = Depends(get_record_store)
):
    return CourseCatalog(store).update_course_requirements(
        institution_id, course_id, data, updated_by=user["user_id"]
    )
