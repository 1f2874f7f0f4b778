"""
Pytest configuration and shared fixtures.
"""

import os

# Must be set before the app reads its settings
os.environ.setdefault("RECORD_STORE", "memory")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient

from placement_engine.core.auth import create_access_token
from placement_engine.core.config import Settings
from placement_engine.db import get_record_store
from placement_engine.db.store import InMemoryRecordStore
from placement_engine.schemas.schemas import (
    Certificate,
    CourseCreate,
    FacultyCreate,
    InstitutionCreate,
    RequirementSet,
    TranscriptUpload,
    WorkExperience,
)
from placement_engine.services.allocation_service import AllocationService
from placement_engine.services.catalog_service import CourseCatalog
from placement_engine.services.profile_service import ProfileService


# =============================================================================
# STORE / SETTINGS
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Memory store, no backoff sleeps."""
    return Settings(
        _env_file=None,
        record_store="memory",
        retry_base_delay=0.0,
        retry_max_delay=0.0,
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def allocation(store, settings) -> AllocationService:
    return AllocationService(store, settings)


@pytest.fixture
def catalog(store) -> CourseCatalog:
    return CourseCatalog(store)


@pytest.fixture
def profiles(store) -> ProfileService:
    return ProfileService(store)


# =============================================================================
# CATALOG FIXTURES
# =============================================================================

def make_institution(catalog: CourseCatalog, name: str, requirements: RequirementSet = None):
    """Institution with one faculty and one course. Returns (institution_id, course_id)."""
    institution_id = catalog.create_institution(InstitutionCreate(name=name))
    catalog.add_faculty(institution_id, FacultyCreate(name="Engineering"))
    course_id = catalog.add_course(
        institution_id,
        "Engineering",
        CourseCreate(name="Computer Science", requirements=requirements or RequirementSet()),
    )
    return institution_id, course_id


@pytest.fixture
def uni_a(catalog):
    return make_institution(catalog, "University A", RequirementSet(min_gpa=3.0))


@pytest.fixture
def uni_b(catalog):
    return make_institution(catalog, "University B", RequirementSet(min_gpa=3.0))


def upload(profiles: ProfileService, student_id: str, gpa: float, certificates=(), years: float = 0,
           field_of_study: str = None):
    """Store a transcript for `student_id`."""
    return profiles.upload_transcript(student_id, TranscriptUpload(
        gpa=gpa,
        certificates=[Certificate(name=name) for name in certificates],
        work_experience=[WorkExperience(years=years)] if years else [],
        field_of_study=field_of_study,
    ))


# =============================================================================
# FASTAPI TEST CLIENT FIXTURES
# =============================================================================

@pytest.fixture
def client(store):
    """TestClient with the record store swapped for a fresh in-memory one."""
    from placement_engine.main import app

    app.dependency_overrides[get_record_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user_id: str, role: str, name: str = None) -> dict:
    token = create_access_token(user_id, role, name=name)
    return {"Authorization": f"Bearer {token}"}
