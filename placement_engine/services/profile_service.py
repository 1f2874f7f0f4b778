"""
Candidate Profile Service

Transcripts are keyed by student id and written only by the owning
student. Upload merges into the stored record: fields left out of the
upload keep their stored value, lists that are sent replace stored lists.
"""

from datetime import datetime
from typing import List, Optional

from placement_engine.core.logger import get_logger
from placement_engine.db.mongodb import COLLECTIONS
from placement_engine.db.store import RecordStore, Transaction
from placement_engine.schemas.schemas import CandidateProfile, TranscriptUpload

logger = get_logger()

TRANSCRIPTS = COLLECTIONS["transcripts"]


class ProfileService:
    def __init__(self, store: RecordStore):
        self.store = store

    def upload_transcript(self, student_id: str, data: TranscriptUpload) -> CandidateProfile:
        now = datetime.utcnow()
        fields = {
            "student_id": student_id,
            "gpa": data.gpa,
            "upload_date": now,
            "updated_at": now,
        }
        if data.certificates is not None:
            fields["certificates"] = [c.model_dump() for c in data.certificates]
        if data.work_experience is not None:
            fields["work_experience"] = [w.model_dump() for w in data.work_experience]
        if data.field_of_study is not None:
            fields["field_of_study"] = data.field_of_study

        self.store.merge(TRANSCRIPTS, student_id, fields)
        logger.info("Transcript uploaded", student_id=student_id)
        return self.get_profile(student_id)

    def get_profile(self, student_id: str, tx: Optional[Transaction] = None) -> Optional[CandidateProfile]:
        reader = tx if tx is not None else self.store
        doc = reader.get(TRANSCRIPTS, student_id)
        return CandidateProfile(**doc) if doc else None

    def all_profiles(self) -> List[CandidateProfile]:
        """Every uploaded transcript, in store order."""
        return [CandidateProfile(**doc) for doc in self.store.find(TRANSCRIPTS)]
