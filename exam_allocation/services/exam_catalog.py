from __future__ import annotations
import logging
from copy import deepcopy
from datetime import date, time
from typing import List, Optional

from exam_allocation.errors import Conflict, NotFound, ValidationError
from exam_allocation.models import EXAM_PENDING, EXAM_STATUSES, EXAM_TRANSITIONS, ExamRecord, Subject
from exam_allocation.services.state import State

logger = logging.getLogger(__name__)


def _check_status(status: str) -> str:
    if status not in EXAM_STATUSES:
        raise ValidationError(f"Unknown exam status '{status}'; expected one of {', '.join(EXAM_STATUSES)}")
    return status


class ExamCatalog:
    """Named exam records with a status lifecycle, as listed on the exams page.

    A record names its subject either by id or by free text; free text that
    matches a registered subject's name or code is linked to it.
    """

    def __init__(self, state: State) -> None:
        self.state = state

    def list_exams(self) -> List[ExamRecord]:
        with self.state.lock:
            records = sorted(self.state.exams.values(), key=lambda e: (e.exam_date, e.start_time, e.id))
            return deepcopy(records)

    def get_exam(self, exam_id: int) -> ExamRecord:
        with self.state.lock:
            return deepcopy(self._exam(exam_id))

    def create_exam(self, exam_name: str, exam_date: date, start_time: time, duration: int = 120,
                    subject: str = "", subject_id: Optional[int] = None, status: str = EXAM_PENDING,
                    description: str = "") -> ExamRecord:
        self._validate(exam_name, duration)
        _check_status(status)
        with self.state.lock:
            subject_id, subject = self._resolve_subject(subject_id, subject)
            record = ExamRecord(self.state.next_id("exam"), exam_name.strip(), exam_date, start_time, duration,
                                subject, subject_id, status, description)
            self.state.exams[record.id] = record
            logger.info("Created exam record %s '%s' on %s", record.id, record.exam_name, exam_date)
            return deepcopy(record)

    def update_exam(self, exam_id: int, exam_name: str, exam_date: date, start_time: time, duration: int = 120,
                    subject: str = "", subject_id: Optional[int] = None, status: Optional[str] = None,
                    description: str = "") -> ExamRecord:
        self._validate(exam_name, duration)
        with self.state.lock:
            record = self._exam(exam_id)
            if record.is_final:
                raise Conflict(f"Exam {exam_id} is {record.status.lower()} and can no longer change")
            if status is not None and status != record.status:
                self._check_transition(record, status)
            record.subject_id, record.subject = self._resolve_subject(subject_id, subject)
            record.exam_name = exam_name.strip()
            record.exam_date = exam_date
            record.start_time = start_time
            record.duration = duration
            record.description = description
            if status is not None:
                record.status = status
            logger.info("Updated exam record %s", exam_id)
            return deepcopy(record)

    def set_status(self, exam_id: int, status: str) -> ExamRecord:
        with self.state.lock:
            record = self._exam(exam_id)
            if status != record.status:
                self._check_transition(record, status)
                logger.info("Exam record %s moved from %s to %s", exam_id, record.status, status)
                record.status = status
            return deepcopy(record)

    def delete_exam(self, exam_id: int) -> None:
        with self.state.lock:
            self._exam(exam_id)
            del self.state.exams[exam_id]
            logger.info("Deleted exam record %s", exam_id)

    @staticmethod
    def _validate(exam_name: str, duration: int) -> None:
        if not exam_name or not exam_name.strip():
            raise ValidationError("examName must not be empty")
        if duration <= 0:
            raise ValidationError("duration must be a positive number of minutes")

    @staticmethod
    def _check_transition(record: ExamRecord, status: str) -> None:
        _check_status(status)
        if status not in EXAM_TRANSITIONS[record.status]:
            raise Conflict(f"Exam {record.id} cannot move from {record.status} to {status}")

    def _resolve_subject(self, subject_id: Optional[int], text: str):
        if subject_id is not None:
            subject = self.state.subjects.get(subject_id)
            if subject is None:
                raise NotFound(f"Subject {subject_id} not found")
            return subject.id, subject.name
        match = self._match_subject(text)
        if match is not None:
            return match.id, match.name
        return None, (text or "").strip()

    def _match_subject(self, text: str) -> Optional[Subject]:
        needle = (text or "").strip().lower()
        if not needle:
            return None
        for subject in sorted(self.state.subjects.values(), key=lambda s: s.id):
            if needle in (subject.name.lower(), subject.code.lower()):
                return subject
        return None

    def _exam(self, exam_id: int) -> ExamRecord:
        record = self.state.exams.get(exam_id)
        if record is None:
            raise NotFound(f"Exam {exam_id} not found")
        return record
