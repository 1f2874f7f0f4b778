"""
Tests for institution, faculty and course records.
"""

import pytest

from conftest import make_institution, upload
from placement_engine.core.exceptions import NotFound, PermissionDenied, Unqualified
from placement_engine.schemas.schemas import (
    CourseCreate,
    FacultyCreate,
    InstitutionCreate,
    InstitutionUpdate,
    RequirementSet,
)


@pytest.fixture
def owned(catalog):
    """Institution created by `admin-a` with one course. Returns (institution_id, course_id)."""
    institution_id = catalog.create_institution(InstitutionCreate(name="University A"), created_by="admin-a")
    catalog.add_faculty(institution_id, FacultyCreate(name="Engineering"), updated_by="admin-a")
    course_id = catalog.add_course(
        institution_id,
        "Engineering",
        CourseCreate(name="Computer Science", requirements=RequirementSet(min_gpa=3.0)),
        updated_by="admin-a",
    )
    return institution_id, course_id


class TestInstitutions:
    def test_list(self, catalog):
        make_institution(catalog, "University A")
        make_institution(catalog, "University B")
        assert [i.name for i in catalog.list_institutions()] == ["University A", "University B"]

    def test_update_keeps_faculties(self, catalog, owned):
        institution_id, course_id = owned

        updated = catalog.update_institution(
            institution_id, InstitutionUpdate(location="Maseru"), updated_by="admin-a"
        )

        assert updated.name == "University A"
        assert updated.location == "Maseru"
        assert updated.faculties[0].courses[0].id == course_id

    def test_delete(self, catalog, owned):
        institution_id, _ = owned
        catalog.delete_institution(institution_id, deleted_by="admin-a")
        with pytest.raises(NotFound):
            catalog.get_institution(institution_id)

    def test_delete_missing(self, catalog):
        with pytest.raises(NotFound):
            catalog.delete_institution("missing")


class TestOwnership:
    """Only the creating institute account may change an institution."""

    def test_other_account_cannot_change(self, catalog, owned):
        institution_id, course_id = owned

        with pytest.raises(PermissionDenied):
            catalog.update_institution(institution_id, InstitutionUpdate(name="Renamed"), updated_by="admin-b")
        with pytest.raises(PermissionDenied):
            catalog.add_faculty(institution_id, FacultyCreate(name="Law"), updated_by="admin-b")
        with pytest.raises(PermissionDenied):
            catalog.add_course(institution_id, "Engineering", CourseCreate(name="Physics"), updated_by="admin-b")
        with pytest.raises(PermissionDenied):
            catalog.update_course_requirements(institution_id, course_id, RequirementSet(), updated_by="admin-b")
        with pytest.raises(PermissionDenied):
            catalog.delete_institution(institution_id, deleted_by="admin-b")

        institution = catalog.get_institution(institution_id)
        assert institution.name == "University A"
        assert [f.name for f in institution.faculties] == ["Engineering"]

    def test_other_account_cannot_publish(self, owned, allocation):
        institution_id, course_id = owned
        with pytest.raises(PermissionDenied):
            allocation.publish_admission(institution_id, course_id, ["s1"], [], published_by="admin-b")

    def test_owner_can_publish(self, owned, allocation):
        institution_id, course_id = owned
        admission_id = allocation.publish_admission(institution_id, course_id, ["s1"], [], published_by="admin-a")
        assert allocation.ledger.get_admission(admission_id).admitted_students == ["s1"]


class TestCourseRequirements:
    def test_update_changes_nested_course_and_lookup(self, catalog, owned):
        institution_id, course_id = owned
        requirements = RequirementSet(min_gpa=3.5, certificates=["AWS"])

        course = catalog.update_course_requirements(institution_id, course_id, requirements, updated_by="admin-a")

        assert course.requirements == requirements
        _, indexed = catalog.get_course(institution_id, course_id)
        assert indexed.requirements == requirements
        [nested] = catalog.get_institution(institution_id).faculties[0].courses
        assert nested.requirements == requirements

    def test_new_requirements_gate_applications(self, catalog, owned, profiles, allocation):
        institution_id, course_id = owned
        upload(profiles, "s1", 3.2)
        catalog.update_course_requirements(institution_id, course_id, RequirementSet(min_gpa=3.5))

        with pytest.raises(Unqualified):
            allocation.submit_application("s1", institution_id, course_id)

    def test_unknown_course(self, catalog, owned):
        institution_id, _ = owned
        with pytest.raises(NotFound, match="Course"):
            catalog.update_course_requirements(institution_id, "missing", RequirementSet())
