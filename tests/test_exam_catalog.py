from datetime import date, time

import pytest

from exam_allocation.errors import Conflict, NotFound, ValidationError
from exam_allocation.models import EXAM_CANCELLED, EXAM_SCHEDULED


def test_subject_linked_by_id_or_name(service, finals):
    _, subject = finals
    by_id = service.exams.create_exam("Quiz", date(2025, 5, 23), time(9), subject_id=subject.id)
    by_name = service.exams.create_exam("Retest", date(2025, 5, 24), time(9), subject="operating systems")
    free_text = service.exams.create_exam("Viva", date(2025, 5, 22), time(14), subject="Seminar")

    assert by_id.subject == "Operating Systems"
    assert by_name.subject_id == subject.id
    assert (free_text.subject_id, free_text.subject) == (None, "Seminar")
    assert [e.exam_name for e in service.exams.list_exams()] == ["Viva", "Quiz", "Retest"]
    with pytest.raises(NotFound):
        service.exams.create_exam("Ghost", date(2025, 5, 23), time(9), subject_id=99)


def test_record_validation(service):
    with pytest.raises(ValidationError):
        service.exams.create_exam(" ", date(2025, 5, 23), time(9))
    with pytest.raises(ValidationError):
        service.exams.create_exam("Quiz", date(2025, 5, 23), time(9), duration=0)
    with pytest.raises(ValidationError):
        service.exams.create_exam("Quiz", date(2025, 5, 23), time(9), status="Done")
    assert service.exams.list_exams() == []


def test_cancelled_record_is_final(service):
    record = service.exams.create_exam("Quiz", date(2025, 5, 23), time(9), status=EXAM_SCHEDULED)
    service.exams.set_status(record.id, EXAM_CANCELLED)

    with pytest.raises(Conflict):
        service.exams.set_status(record.id, EXAM_SCHEDULED)
    with pytest.raises(Conflict):
        service.exams.update_exam(record.id, "Quiz again", date(2025, 5, 26), time(9))
    # Repeating the current status is a no-op
    assert service.exams.set_status(record.id, EXAM_CANCELLED).status == EXAM_CANCELLED
