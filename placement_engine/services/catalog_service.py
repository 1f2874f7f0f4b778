"""
Course Catalog Service

Institutions embed their faculties and courses. Alongside the nested
`faculties` list each institution record keeps a flattened
`course_index` (course id -> course + faculty name), written in the same
transaction as the nested course, so course lookup is a dict access.

Only the principal that created an institution may change it. Records
created without an owner accept changes from anyone.
"""

import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from placement_engine.core.exceptions import ConstraintViolation, NotFound, PermissionDenied
from placement_engine.core.logger import get_logger
from placement_engine.db.mongodb import COLLECTIONS
from placement_engine.db.store import RecordStore, Transaction
from placement_engine.schemas.schemas import (
    Course,
    CourseCreate,
    Faculty,
    FacultyCreate,
    Institution,
    InstitutionCreate,
    InstitutionUpdate,
    RequirementSet,
)

logger = get_logger()

INSTITUTIONS = COLLECTIONS["institutions"]


class CourseCatalog:
    """Institution / faculty / course records and course-by-id lookup."""

    def __init__(self, store: RecordStore):
        self.store = store

    def _read(self, institution_id: str, tx: Optional[Transaction] = None) -> dict:
        reader = tx if tx is not None else self.store
        doc = reader.get(INSTITUTIONS, institution_id)
        if doc is None:
            raise NotFound("Institution", institution_id)
        return doc

    @staticmethod
    def check_owner(doc: dict, principal: Optional[str]):
        """
        Raises:
            PermissionDenied: `principal` is not the institution's creator
        """
        owner = doc.get("created_by")
        if principal is not None and owner is not None and owner != principal:
            raise PermissionDenied("Not your institution")

    def get_institution(self, institution_id: str, tx: Optional[Transaction] = None) -> Institution:
        return Institution(**self._read(institution_id, tx))

    def get_course(
        self,
        institution_id: str,
        course_id: str,
        tx: Optional[Transaction] = None,
    ) -> Tuple[Institution, Course]:
        """
        Resolve a course by id.

        Raises:
            NotFound: institution or course absent
        """
        doc = self._read(institution_id, tx)
        entry = (doc.get("course_index") or {}).get(course_id)
        if entry is None:
            raise NotFound("Course", course_id)
        course = Course(**{k: v for k, v in entry.items() if k != "faculty_name"})
        return Institution(**doc), course

    def create_institution(self, data: InstitutionCreate, created_by: Optional[str] = None) -> str:
        doc = data.model_dump()
        doc.update({
            "faculties": [],
            "course_index": {},
            "created_by": created_by,
            "created_at": datetime.utcnow(),
        })
        institution_id = self.store.insert(INSTITUTIONS, doc)
        logger.info("Institution created", institution_id=institution_id)
        return institution_id

    def add_faculty(self, institution_id: str, faculty: FacultyCreate, updated_by: Optional[str] = None):
        with self.store.transaction() as tx:
            doc = self._read(institution_id, tx)
            self.check_owner(doc, updated_by)
            faculties = doc.get("faculties") or []
            if any(f["name"] == faculty.name for f in faculties):
                raise ConstraintViolation(f"Faculty '{faculty.name}' already exists")
            faculties.append(Faculty(**faculty.model_dump()).model_dump())
            tx.update(INSTITUTIONS, institution_id, {
                "faculties": faculties,
                "updated_at": datetime.utcnow(),
                "updated_by": updated_by,
            })

    def add_course(
        self,
        institution_id: str,
        faculty_name: str,
        course: CourseCreate,
        updated_by: Optional[str] = None,
    ) -> str:
        """Append a course to a faculty and index it. Returns the new course id."""
        course_id = uuid.uuid4().hex[:12]
        record = Course(id=course_id, **course.model_dump()).model_dump()

        with self.store.transaction() as tx:
            doc = self._read(institution_id, tx)
            self.check_owner(doc, updated_by)
            faculties = doc.get("faculties") or []
            faculty = next((f for f in faculties if f["name"] == faculty_name), None)
            if faculty is None:
                raise NotFound("Faculty", faculty_name)

            faculty.setdefault("courses", []).append(record)
            course_index = doc.get("course_index") or {}
            course_index[course_id] = dict(record, faculty_name=faculty_name)

            tx.update(INSTITUTIONS, institution_id, {
                "faculties": faculties,
                "course_index": course_index,
                "updated_at": datetime.utcnow(),
                "updated_by": updated_by,
            })

        logger.info("Course added", institution_id=institution_id, course_id=course_id)
        return course_id

    def list_institutions(self) -> List[Institution]:
        return [Institution(**doc) for doc in self.store.find(INSTITUTIONS)]

    def update_institution(
        self,
        institution_id: str,
        data: InstitutionUpdate,
        updated_by: Optional[str] = None,
    ) -> Institution:
        """Overwrite the fields set in `data`; faculties and courses are kept."""
        changes = data.model_dump(exclude_none=True)
        with self.store.transaction() as tx:
            doc = self._read(institution_id, tx)
            self.check_owner(doc, updated_by)
            changes.update({"updated_at": datetime.utcnow(), "updated_by": updated_by})
            tx.update(INSTITUTIONS, institution_id, changes)

        logger.info("Institution updated", institution_id=institution_id, fields=sorted(data.model_fields_set))
        return self.get_institution(institution_id)

    def delete_institution(self, institution_id: str, deleted_by: Optional[str] = None):
        """
        Remove the institution record. Applications and admissions that
        reference it are kept as history.
        """
        with self.store.transaction() as tx:
            doc = self._read(institution_id, tx)
            self.check_owner(doc, deleted_by)
            tx.delete(INSTITUTIONS, institution_id)

        logger.info("Institution deleted", institution_id=institution_id, deleted_by=deleted_by)

    def update_course_requirements(
        self,
        institution_id: str,
        course_id: str,
        requirements: RequirementSet,
        updated_by: Optional[str] = None,
    ) -> Course:
        """
        Replace a course's requirement set in both the nested faculty
        course and `course_index`.

        Applications already submitted are not re-checked.
        """
        value = requirements.model_dump()
        with self.store.transaction() as tx:
            doc = self._read(institution_id, tx)
            self.check_owner(doc, updated_by)
            course_index = doc.get("course_index") or {}
            entry = course_index.get(course_id)
            if entry is None:
                raise NotFound("Course", course_id)

            faculties = doc.get("faculties") or []
            for faculty in faculties:
                if faculty["name"] != entry["faculty_name"]:
                    continue
                for course in faculty.get("courses") or []:
                    if course.get("id") == course_id:
                        course["requirements"] = value
            entry["requirements"] = value

            tx.update(INSTITUTIONS, institution_id, {
                "faculties": faculties,
                "course_index": course_index,
                "updated_at": datetime.utcnow(),
                "updated_by": updated_by,
            })

        logger.info("Course requirements updated", institution_id=institution_id, course_id=course_id)
        return Course(**{k: v for k, v in entry.items() if k != "faculty_name"})
