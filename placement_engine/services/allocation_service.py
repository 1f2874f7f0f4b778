"""
Allocation Service

Drives each student's applications through the admission state machine:

    pending  -> admitted | rejected
    admitted -> accepted | rejected
    accepted, rejected: terminal

ENTRY POINTS:
- submit_application: cap / exclusivity / catalog / qualification checks,
  then a new pending application
- publish_admission:  institution publishes admitted + waiting lists
- select_admission:   student commits to one institution; every other
  admission releases the seat and promotes its waiting-list head (FIFO),
  skipping heads that already accepted an offer elsewhere
- waiting_list_position

Every entry point runs as one transaction with optimistic version checks;
conflicts re-run the whole unit of work against fresh reads.
"""

from typing import Dict, List, Optional

from placement_engine.core.config import Settings, get_settings
from placement_engine.core.exceptions import ConstraintViolation, NotFound, Unqualified
from placement_engine.core.logger import get_logger
from placement_engine.db.store import RecordStore, Transaction
from placement_engine.schemas.schemas import (
    Admission,
    Application,
    ApplicationStatus,
    SelectionResult,
    WaitingListPosition,
)
from placement_engine.services.catalog_service import CourseCatalog
from placement_engine.services.ledger_service import AdmissionLedger
from placement_engine.services.profile_service import ProfileService
from placement_engine.services.scoring_service import unmet_requirements
from placement_engine.utils.retry import retrying

logger = get_logger()

RULE_LABELS = {
    "gpa": "GPA",
    "experience": "work experience",
    "certificates": "certificate",
    "field": "field of study",
}


def _for_course(applications: List[Application], course_id: str) -> List[Application]:
    """Applications for `course_id`; all of them when none names the course."""
    matching = [a for a in applications if a.course_id == course_id]
    return matching or applications


class AllocationService:
    """
    Application submission, admission publication and the selection cascade.

    Usage:
        service = AllocationService(store)
        app_id = service.submit_application("s1", "inst1", "course1")
        service.publish_admission("inst1", "course1", ["s1"], ["s2"])
        service.select_admission("s1", "inst1")
    """

    def __init__(self, store: RecordStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()
        self.ledger = AdmissionLedger(store, self.settings)
        self.catalog = CourseCatalog(store)
        self.profiles = ProfileService(store)

    # ============================================================
    # SUBMIT
    # ============================================================

    def submit_application(
        self,
        student_id: str,
        institution_id: str,
        course_id: str,
        docs: Optional[List[str]] = None,
        enforce_exclusivity: Optional[bool] = None,
        deadline: Optional[float] = None,
    ) -> str:
        """
        Create a pending application.

        Args:
            enforce_exclusivity: block students already `admitted` anywhere;
                defaults to Settings.enforce_admission_exclusivity

        Raises:
            ConstraintViolation: cap reached or already admitted elsewhere
            NotFound: institution or course absent
            Unqualified: no transcript, or course requirements not met
        """
        if enforce_exclusivity is None:
            enforce_exclusivity = self.settings.enforce_admission_exclusivity

        application_id = retrying(self._submit, self.settings)(
            student_id, institution_id, course_id, docs, enforce_exclusivity, deadline=deadline
        )
        logger.info(
            "Application submitted",
            application_id=application_id,
            student_id=student_id,
            institution_id=institution_id,
            course_id=course_id,
        )
        return application_id

    def _submit(self, student_id, institution_id, course_id, docs, enforce_exclusivity, deadline=None) -> str:
        with self.store.transaction(deadline=deadline) as tx:
            self.ledger.guard_student(tx, student_id)
            self.ledger.check_application_quota(student_id, institution_id, tx)

            if enforce_exclusivity and self.ledger.has_active_admission(student_id, tx):
                raise ConstraintViolation("You have already been admitted to another institution")

            institution, course = self.catalog.get_course(institution_id, course_id, tx)

            profile = self.profiles.get_profile(student_id, tx)
            if profile is None:
                raise Unqualified("Please upload your transcript first", ["transcript"])

            failed = unmet_requirements(profile, course.requirements)
            if failed:
                labels = ", ".join(RULE_LABELS[rule] for rule in failed)
                raise Unqualified(f"Does not meet {labels} requirement", failed)

            return self.ledger.create_application(
                tx,
                student_id=student_id,
                institution_id=institution_id,
                course_id=course_id,
                student_gpa=profile.gpa,
                course_name=course.name,
                institution_name=institution.name,
                docs=docs,
            )

    # ============================================================
    # PUBLISH
    # ============================================================

    def publish_admission(
        self,
        institution_id: str,
        course_id: str,
        admitted_students: List[str],
        waiting_list: List[str],
        published_by: Optional[str] = None,
        deadline: Optional[float] = None,
    ) -> str:
        """
        Publish an admission outcome. The waiting list order is taken as
        given (rank order decided by the institution).

        Raises:
            NotFound: institution or course absent
            ConstraintViolation: lists overlap or hold duplicates
            PermissionDenied: `published_by` does not own the institution
        """
        institution, course = self.catalog.get_course(institution_id, course_id)
        self.catalog.check_owner(institution.model_dump(), published_by)
        return self.ledger.publish_admission(
            institution_id,
            course_id,
            admitted_students,
            waiting_list,
            institution_name=institution.name,
            course_name=course.name,
            deadline=deadline,
        )

    # ============================================================
    # SELECT
    # ============================================================

    def select_admission(
        self,
        student_id: str,
        chosen_institution_id: str,
        deadline: Optional[float] = None,
    ) -> SelectionResult:
        """
        Accept the offer at `chosen_institution_id` and release every other.

        Raises:
            NotFound: the student is in no admission's admitted list
            ConstraintViolation: the student was not admitted at the chosen institution
        """
        result = retrying(self._select, self.settings)(
            student_id, chosen_institution_id, deadline=deadline
        )
        for _ in result.promotions:
            logger.record_promotion()
        logger.info(
            "Admission selected",
            student_id=student_id,
            institution_id=chosen_institution_id,
            released=result.released,
            promotions=result.promotions,
        )
        return result

    def _select(self, student_id: str, chosen_institution_id: str, deadline=None) -> SelectionResult:
        with self.store.transaction(deadline=deadline) as tx:
            admissions = self.ledger.find_admissions_containing(student_id, tx)
            if not admissions:
                raise NotFound("Admission")

            chosen = [a for a in admissions if a.institution_id == chosen_institution_id]
            if not chosen:
                raise ConstraintViolation("You were not admitted to the selected institution")

            self._accept(tx, student_id, chosen)

            released: List[str] = []
            promotions: Dict[str, str] = {}
            for admission in admissions:
                if admission.institution_id == chosen_institution_id:
                    continue
                promoted = self._release_seat(tx, student_id, admission)
                if promoted:
                    promotions[admission.id] = promoted
                released.append(admission.id)

            return SelectionResult(
                accepted_institution_id=chosen_institution_id,
                released=released,
                promotions=promotions,
            )

    def _accept(self, tx: Transaction, student_id: str, chosen: List[Admission]):
        institution_id = chosen[0].institution_id
        applications = self.ledger.applications_for(student_id, institution_id, tx)
        course_ids = {a.course_id for a in chosen}
        targets = [a for a in applications if a.course_id in course_ids] or applications

        for application in targets:
            # The admission record is authoritative: a pending application here
            # only missed its best-effort update at publication time.
            if application.status == ApplicationStatus.pending:
                self.ledger.update_application_status(application.id, ApplicationStatus.admitted, tx)
                self.ledger.update_application_status(application.id, ApplicationStatus.accepted, tx)
            elif application.status == ApplicationStatus.admitted:
                self.ledger.update_application_status(application.id, ApplicationStatus.accepted, tx)

    def _release_seat(self, tx: Transaction, student_id: str, admission: Admission) -> Optional[str]:
        """
        Drop the student from `admission`, promote the waiting-list head.

        Heads who already accepted an offer elsewhere leave the waiting list
        without taking the seat; the next one in line is offered it instead.
        """
        admitted = [s for s in admission.admitted_students if s != student_id]
        waiting = list(admission.waiting_list)

        promoted = None
        while waiting:
            head = waiting.pop(0)
            if self.ledger.holds_acceptance(head, tx):
                self._reject_open(tx, head, admission.institution_id)
                continue
            promoted = head
            admitted.append(promoted)
            break

        self.ledger.save_admission_lists(tx, admission.id, admitted, waiting)

        if promoted:
            promoted_apps = self.ledger.applications_for(promoted, admission.institution_id, tx)
            for application in _for_course(promoted_apps, admission.course_id):
                if application.status == ApplicationStatus.pending:
                    self.ledger.update_application_status(application.id, ApplicationStatus.admitted, tx)

        self._reject_open(tx, student_id, admission.institution_id)
        return promoted

    def _reject_open(self, tx: Transaction, student_id: str, institution_id: str):
        """Reject the student's pending and admitted applications at the institution."""
        for application in self.ledger.applications_for(student_id, institution_id, tx):
            if application.status in (ApplicationStatus.pending, ApplicationStatus.admitted):
                self.ledger.update_application_status(application.id, ApplicationStatus.rejected, tx)

    # ============================================================
    # QUERIES
    # ============================================================

    def waiting_list_position(self, student_id: str, institution_id: str) -> WaitingListPosition:
        """
        Raises:
            ConstraintViolation: the student is not on that institution's waiting list
        """
        admission = self.ledger.find_waiting_admission(student_id, institution_id)
        if admission is None:
            raise ConstraintViolation("Not found in waiting list")
        return WaitingListPosition(
            position=admission.waiting_list.index(student_id) + 1,
            total_waiting=len(admission.waiting_list),
            institution_name=admission.institution_name,
            course_name=admission.course_name,
        )

    def student_applications(self, student_id: str) -> List[Application]:
        return self.ledger.applications_by_student(student_id)

    def student_admissions(self, student_id: str) -> List[Application]:
        """Applications currently holding an offer."""
        return self.ledger.applications_by_student(student_id, status=ApplicationStatus.admitted.value)
