from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query

from exam_allocation.api.deps import RequestContext, get_service, require_permitted
from exam_allocation.api.presenters import (
    exam_record_out,
    faculty_slot_out,
    schedule_exam_out,
    slot_out,
    subject_out,
    workload_out,
)
from exam_allocation.models import EXAM_PENDING
from exam_allocation.schemas import (
    ExamRecordIn,
    ExamRecordOut,
    ExamSlotOut,
    ExamStatsOut,
    ExamStatsRangeOut,
    ExamStatusUpdate,
    FacultySlotOut,
    FacultyWorkloadOut,
    ScheduleExamOut,
    SubjectDistributionEntry,
    SubjectOut,
)
from exam_allocation.services.exam_service import ExamSchedulingService

router = APIRouter(prefix="/exams", tags=["exams"])


@router.get("/stats", response_model=ExamStatsOut)
def exam_stats(service: ExamSchedulingService = Depends(get_service)):
    stats = service.orchestrator.exam_stats()
    return ExamStatsOut(total_exams=stats.total_exams, upcoming_exams=stats.upcoming_exams,
                        pending_exams=stats.pending_exams, timestamp=stats.timestamp)


@router.get("/stats/range", response_model=ExamStatsRangeOut)
def exam_stats_by_range(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    service: ExamSchedulingService = Depends(get_service),
):
    stats = service.orchestrator.exam_stats_in_range(start_date, end_date)
    return ExamStatsRangeOut(
        total_exams_in_range=stats.total_in_range,
        start_date=stats.start_date,
        end_date=stats.end_date,
        exams=[slot_out(service, slot) for slot in stats.slots],
    )


@router.get("/subject-distribution", response_model=List[SubjectDistributionEntry])
def subject_distribution(service: ExamSchedulingService = Depends(get_service)):
    return [SubjectDistributionEntry(subject_id=row.subject_id, subject=row.subject, code=row.code, count=row.count)
            for row in service.orchestrator.subject_distribution()]


@router.get("/subject/{subject}", response_model=List[ExamSlotOut])
def exams_by_subject(subject: str, service: ExamSchedulingService = Depends(get_service)):
    return [slot_out(service, slot) for slot in service.orchestrator.slots_for_subject(subject)]


@router.get("/upcoming", response_model=List[ExamSlotOut])
def upcoming_exams(service: ExamSchedulingService = Depends(get_service)):
    return [slot_out(service, slot) for slot in service.orchestrator.upcoming_slots()]


@router.get("/upcoming/subject/{subject}", response_model=List[ExamSlotOut])
def upcoming_exams_by_subject(subject: str, service: ExamSchedulingService = Depends(get_service)):
    return [slot_out(service, slot) for slot in service.orchestrator.upcoming_slots(subject)]


@router.get("/schedule/{schedule_id}", response_model=List[ScheduleExamOut])
def exams_in_schedule(schedule_id: int, service: ExamSchedulingService = Depends(get_service)):
    return [schedule_exam_out(service, slot) for slot in service.store.list_slots(schedule_id)]


@router.get("/slots/faculty", response_model=List[FacultySlotOut])
def slots_with_faculty(service: ExamSchedulingService = Depends(get_service)):
    return [faculty_slot_out(service, slot) for slot in service.store.list_slots()]


@router.get("/faculty/workload", response_model=List[FacultyWorkloadOut])
def faculty_workload(service: ExamSchedulingService = Depends(get_service)):
    return [workload_out(row) for row in service.orchestrator.faculty_workload()]


# --- Exam records; keep below the fixed paths so /{exam_id} does not shadow them ---
@router.get("/subjects", response_model=List[SubjectOut])
def exam_subjects(service: ExamSchedulingService = Depends(get_service)):
    return [subject_out(service, s) for s in service.registry.list_subjects()]


@router.get("/subjects/program/{program_id}", response_model=List[SubjectOut])
def exam_subjects_by_program(program_id: int, service: ExamSchedulingService = Depends(get_service)):
    service.registry.get_program(program_id)
    return [subject_out(service, s) for s in service.registry.list_subjects(program_id)]


def _record_fields(payload: ExamRecordIn) -> dict:
    picked = payload.subject_entity
    text = payload.subject
    if not text and picked is not None:
        text = picked.name or picked.code or ""
    return dict(
        exam_name=payload.exam_name,
        exam_date=payload.exam_date,
        start_time=payload.start_time,
        duration=payload.duration,
        subject=text,
        subject_id=picked.id if picked else None,
        description=payload.description,
    )


@router.get("", response_model=List[ExamRecordOut])
def list_exams(service: ExamSchedulingService = Depends(get_service)):
    return [exam_record_out(service, record) for record in service.exams.list_exams()]


@router.post("", response_model=ExamRecordOut, status_code=201)
def create_exam(payload: ExamRecordIn, service: ExamSchedulingService = Depends(get_service),
                ctx: RequestContext = Depends(require_permitted)):
    record = service.exams.create_exam(status=payload.status or EXAM_PENDING, **_record_fields(payload))
    return exam_record_out(service, record)


@router.get("/{exam_id}", response_model=ExamRecordOut)
def get_exam(exam_id: int, service: ExamSchedulingService = Depends(get_service)):
    return exam_record_out(service, service.exams.get_exam(exam_id))


@router.put("/{exam_id}", response_model=ExamRecordOut)
def update_exam(exam_id: int, payload: ExamRecordIn, service: ExamSchedulingService = Depends(get_service),
                ctx: RequestContext = Depends(require_permitted)):
    record = service.exams.update_exam(exam_id, status=payload.status, **_record_fields(payload))
    return exam_record_out(service, record)


@router.put("/{exam_id}/status", response_model=ExamRecordOut)
def update_exam_status(exam_id: int, payload: ExamStatusUpdate,
                       service: ExamSchedulingService = Depends(get_service),
                       ctx: RequestContext = Depends(require_permitted)):
    return exam_record_out(service, service.exams.set_status(exam_id, payload.status))


@router.delete("/{exam_id}", status_code=204)
def delete_exam(exam_id: int, service: ExamSchedulingService = Depends(get_service),
                ctx: RequestContext = Depends(require_permitted)):
    service.exams.delete_exam(exam_id)
