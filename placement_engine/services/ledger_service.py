"""
Admission Ledger

Single source of truth for Application and Admission records.

Applications:
- at most `max_applications_per_institution` per (student, institution),
  counting every status
- only the status changes after creation, following TRANSITIONS
- never deleted

Admissions:
- one record per publication of an (institution, course) outcome
- `admitted_students` and `waiting_list` are disjoint and duplicate-free
- publication writes the Admission transactionally; moving each admitted
  student's Application to `admitted` is best-effort and a failure there is
  logged and skipped, because the published lists are authoritative
"""

from datetime import datetime
from typing import Dict, List, Optional, Set

from placement_engine.core.config import Settings, get_settings
from placement_engine.core.exceptions import ConstraintViolation, EngineError, NotFound
from placement_engine.core.logger import get_logger
from placement_engine.db.mongodb import COLLECTIONS
from placement_engine.db.store import RecordStore, Transaction
from placement_engine.schemas.schemas import Admission, Application, ApplicationStatus
from placement_engine.utils.retry import retrying

logger = get_logger()

APPLICATIONS = COLLECTIONS["applications"]
ADMISSIONS = COLLECTIONS["admissions"]
APPLICANT_GUARDS = COLLECTIONS["applicant_guards"]

PENDING = ApplicationStatus.pending.value
ADMITTED = ApplicationStatus.admitted.value
ACCEPTED = ApplicationStatus.accepted.value
REJECTED = ApplicationStatus.rejected.value

TRANSITIONS: Dict[str, Set[str]] = {
    PENDING: {ADMITTED, REJECTED},
    ADMITTED: {ACCEPTED, REJECTED},
    ACCEPTED: set(),
    REJECTED: set(),
}


def can_transition(current: str, new: str) -> bool:
    return new == current or new in TRANSITIONS.get(current, set())


class AdmissionLedger:
    """CRUD primitives and constraint checks over applications and admissions."""

    def __init__(self, store: RecordStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def _reader(self, tx: Optional[Transaction]):
        return tx if tx is not None else self.store

    # ============================================================
    # APPLICATIONS
    # ============================================================

    def applications_for(
        self,
        student_id: str,
        institution_id: str,
        tx: Optional[Transaction] = None,
    ) -> List[Application]:
        docs = self._reader(tx).find(
            APPLICATIONS,
            where={"student_id": student_id, "institution_id": institution_id},
        )
        return [Application(**doc) for doc in docs]

    def applications_by_student(self, student_id: str, status: Optional[str] = None) -> List[Application]:
        where = {"student_id": student_id}
        if status:
            where["status"] = status
        return [Application(**doc) for doc in self.store.find(APPLICATIONS, where=where)]

    def count_applications(
        self,
        student_id: str,
        institution_id: str,
        tx: Optional[Transaction] = None,
    ) -> int:
        """Applications for the pair regardless of status."""
        return len(self.applications_for(student_id, institution_id, tx))

    def check_application_quota(self, student_id: str, institution_id: str, tx: Optional[Transaction] = None):
        """
        Raises:
            ConstraintViolation: the pair already holds the maximum
        """
        limit = self.settings.max_applications_per_institution
        if self.count_applications(student_id, institution_id, tx) >= limit:
            raise ConstraintViolation(f"Maximum {limit} applications per institution allowed")

    def has_active_admission(self, student_id: str, tx: Optional[Transaction] = None) -> bool:
        """True if any of the student's applications is `admitted`."""
        docs = self._reader(tx).find(
            APPLICATIONS, where={"student_id": student_id, "status": ADMITTED}
        )
        return len(docs) > 0

    def holds_acceptance(self, student_id: str, tx: Optional[Transaction] = None) -> bool:
        """True if the student has already accepted an offer somewhere."""
        docs = self._reader(tx).find(APPLICATIONS, where={"student_id": student_id})
        return any(doc["status"] == ACCEPTED for doc in docs)

    def guard_student(self, tx: Transaction, student_id: str):
        """Serialise concurrent application writes for one student."""
        tx.touch(APPLICANT_GUARDS, student_id, {"student_id": student_id, "touched_at": datetime.utcnow()})

    def create_application(
        self,
        tx: Transaction,
        student_id: str,
        institution_id: str,
        course_id: str,
        student_gpa: Optional[float] = None,
        course_name: Optional[str] = None,
        institution_name: Optional[str] = None,
        docs: Optional[List[str]] = None,
    ) -> str:
        application = Application(
            student_id=student_id,
            institution_id=institution_id,
            course_id=course_id,
            status=ApplicationStatus.pending,
            applied_at=datetime.utcnow(),
            student_gpa=student_gpa,
            course_name=course_name,
            institution_name=institution_name,
            docs=docs or [],
        )
        return tx.insert(APPLICATIONS, application.model_dump(exclude={"id"}))

    def update_application_status(
        self,
        application_id: str,
        new_status: ApplicationStatus,
        tx: Optional[Transaction] = None,
    ) -> bool:
        """
        Move an application to `new_status`.

        Returns False when the application already has that status.

        Raises:
            NotFound: unknown application
            ConstraintViolation: transition not allowed
        """
        if tx is None:
            with self.store.transaction() as own_tx:
                return self.update_application_status(application_id, new_status, own_tx)

        doc = tx.get(APPLICATIONS, application_id)
        if doc is None:
            raise NotFound("Application", application_id)

        current = doc["status"]
        new = ApplicationStatus(new_status).value
        if not can_transition(current, new):
            raise ConstraintViolation(f"Cannot move application from {current} to {new}")
        if current == new:
            return False

        tx.update(APPLICATIONS, application_id, {"status": new, "updated_at": datetime.utcnow()})
        return True

    # ============================================================
    # ADMISSIONS
    # ============================================================

    def get_admission(self, admission_id: str, tx: Optional[Transaction] = None) -> Admission:
        doc = self._reader(tx).get(ADMISSIONS, admission_id)
        if doc is None:
            raise NotFound("Admission", admission_id)
        return Admission(**doc)

    def find_admissions_containing(self, student_id: str, tx: Optional[Transaction] = None) -> List[Admission]:
        """Every admission listing the student in `admitted_students`."""
        docs = self._reader(tx).find(ADMISSIONS, contains={"admitted_students": student_id})
        return [Admission(**doc) for doc in docs]

    def find_waiting_admission(self, student_id: str, institution_id: str) -> Optional[Admission]:
        docs = self.store.find(
            ADMISSIONS,
            where={"institution_id": institution_id},
            contains={"waiting_list": student_id},
        )
        return Admission(**docs[0]) if docs else None

    def save_admission_lists(
        self,
        tx: Transaction,
        admission_id: str,
        admitted_students: List[str],
        waiting_list: List[str],
    ):
        tx.update(ADMISSIONS, admission_id, {
            "admitted_students": admitted_students,
            "waiting_list": waiting_list,
            "updated_at": datetime.utcnow(),
        })

    def publish_admission(
        self,
        institution_id: str,
        course_id: str,
        admitted_students: List[str],
        waiting_list: List[str],
        institution_name: Optional[str] = None,
        course_name: Optional[str] = None,
        deadline: Optional[float] = None,
    ) -> str:
        """
        Create the Admission record, then mark admitted applications.

        The record is committed first. Each admitted student's pending
        applications at the institution are then moved to `admitted` one
        student at a time; failures are logged and skipped.
        """
        admitted_students = list(admitted_students)
        waiting_list = list(waiting_list)
        if len(set(admitted_students)) != len(admitted_students) or len(set(waiting_list)) != len(waiting_list):
            raise ConstraintViolation("Admission lists must not contain duplicates")
        overlap = set(admitted_students) & set(waiting_list)
        if overlap:
            raise ConstraintViolation("A student cannot be both admitted and waiting-listed")

        admission = Admission(
            institution_id=institution_id,
            course_id=course_id,
            institution_name=institution_name,
            course_name=course_name,
            admitted_students=admitted_students,
            waiting_list=waiting_list,
            published=True,
            published_at=datetime.utcnow(),
        )
        with self.store.transaction(deadline=deadline) as tx:
            admission_id = tx.insert(ADMISSIONS, admission.model_dump(exclude={"id"}))

        logger.info(
            "Admission published",
            admission_id=admission_id,
            institution_id=institution_id,
            course_id=course_id,
            admitted=len(admitted_students),
            waiting=len(waiting_list),
        )

        for student_id in admitted_students:
            try:
                retrying(self.mark_admitted, self.settings)(student_id, institution_id)
            except EngineError as e:
                logger.record_status_update_failure()
                logger.warning(
                    "Could not mark application admitted",
                    admission_id=admission_id,
                    student_id=student_id,
                    error=e.message,
                )

        return admission_id

    def mark_admitted(self, student_id: str, institution_id: str) -> int:
        """Move the student's pending applications at the institution to `admitted`."""
        updated = 0
        with self.store.transaction() as tx:
            for application in self.applications_for(student_id, institution_id, tx):
                if application.status == ApplicationStatus.pending:
                    self.update_application_status(application.id, ApplicationStatus.admitted, tx)
                    updated += 1
        return updated
