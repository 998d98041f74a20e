"""Turns domain records into wire schemas.

Lookups go through the service state under its lock so one response never
mixes two versions of the data.
"""
from typing import Optional

from exam_allocation import config
from exam_allocation.allocation.engine import AllocationReport
from exam_allocation.models import ExamRecord, ExamSlot, Faculty, Room, Schedule, Student, Subject
from exam_allocation.schemas import (
    AllocatedSlot,
    AllocationResponse,
    ExamRecordOut,
    ExamSlotOut,
    FacultyLoadRef,
    FacultyOut,
    FacultyRef,
    FacultySlotOut,
    FacultyWorkloadOut,
    ProgramRef,
    RoomOut,
    RoomRef,
    ScheduleExamOut,
    ScheduleOut,
    SlotSummary,
    StudentOut,
    SubjectOut,
    SubjectRef,
)
from exam_allocation.services.exam_service import ExamSchedulingService
from exam_allocation.services.orchestrator import FacultyWorkload


def room_out(service: ExamSchedulingService, room: Room) -> RoomOut:
    return RoomOut(
        id=room.id,
        room_number=room.room_number,
        building=room.building,
        floor=room.floor,
        seating_capacity=room.capacity,
        room_type=room.room_type,
        is_available=room.is_available,
        status=service.registry.room_status(room),
    )


def faculty_out(member: Faculty) -> FacultyOut:
    return FacultyOut(
        id=member.id,
        name=member.name,
        department=member.department,
        current_workload=member.current_workload,
        workload_capacity=member.workload_capacity,
        is_exam_head=member.can_be_exam_head,
        is_invigilator=member.can_invigilate,
    )


def faculty_ref(member: Faculty) -> FacultyRef:
    return FacultyRef(id=member.id, name=member.name, department=member.department)


def _program_ref(service: ExamSchedulingService, program_id: Optional[int]) -> Optional[ProgramRef]:
    program = service.state.programs.get(program_id) if program_id is not None else None
    return ProgramRef(id=program.id, name=program.name) if program else None


def subject_out(service: ExamSchedulingService, subject: Subject) -> SubjectOut:
    with service.state.lock:
        program = _program_ref(service, subject.program_id)
    return SubjectOut(
        id=subject.id,
        name=subject.name,
        code=subject.code,
        program=program,
        total_students=subject.total_students,
        regular_students=subject.regular_students,
        backlog_students=subject.backlog_students,
        enrolled_students=subject.total_students,
    )


def student_out(service: ExamSchedulingService, student: Student) -> StudentOut:
    with service.state.lock:
        program = _program_ref(service, student.program_id)
    return StudentOut(
        id=student.id,
        student_id=student.student_id,
        name=student.name,
        email=student.email,
        phone=student.phone,
        program=program,
        semester=student.semester,
        status=student.status,
        enrollment_date=student.enrollment_date,
        address=student.address,
    )


def schedule_out(service: ExamSchedulingService, schedule: Schedule) -> ScheduleOut:
    return ScheduleOut(
        id=schedule.id,
        name=schedule.name,
        start_date=schedule.start_date,
        end_date=schedule.end_date,
        status=schedule.status(service.orchestrator.today()),
        program_ids=schedule.program_ids,
        include_weekends=schedule.include_weekends,
        slot_count=len(schedule.slot_ids),
    )


def slot_out(service: ExamSchedulingService, slot: ExamSlot) -> ExamSlotOut:
    state = service.state
    with state.lock:
        subject = state.subjects.get(slot.subject_id)
        room = state.rooms.get(slot.room_id) if slot.room_id is not None else None
        faculty = state.faculty.get(slot.faculty_id) if slot.faculty_id is not None else None
        head = state.faculty.get(slot.exam_head_id) if slot.exam_head_id is not None else None
        invigilators = [faculty_ref(state.faculty[fid]) for fid in slot.invigilator_ids if fid in state.faculty]
        return ExamSlotOut(
            id=slot.id,
            schedule_id=slot.schedule_id,
            exam_date=slot.window.date,
            start_time=slot.window.start,
            end_time=slot.window.end,
            reporting_time=slot.reporting_time(config.REPORTING_LEAD_MINUTES),
            slot_type=slot.slot_type,
            subject=SubjectRef(id=subject.id, name=subject.name, code=subject.code) if subject else None,
            room=RoomRef(id=room.id, room_number=room.room_number, capacity=room.capacity) if room else None,
            faculty=faculty_ref(faculty) if faculty else None,
            exam_head=faculty_ref(head) if head else None,
            invigilators=invigilators,
            student_count=slot.student_count,
            regular_student_count=slot.regular_student_count,
            backlog_student_count=slot.backlog_student_count,
            is_morning_slot=slot.is_morning_slot,
        )


def allocation_response(service: ExamSchedulingService, report: AllocationReport) -> AllocationResponse:
    slots = []
    for outcome in report.outcomes:
        slot = outcome.slot or service.state.slots.get(outcome.slot_id)
        if slot is None:
            continue
        summary = service.orchestrator.slot_summary(slot)
        summary.pop("student_count")
        slots.append(AllocatedSlot(**summary, success=outcome.success, reason=outcome.reason,
                                   message=outcome.message))
    return AllocationResponse(
        total_slots=report.total_slots,
        successful_allocations=report.successful_allocations,
        failed_allocations=report.failed_allocations,
        message=report.message,
        slots=slots,
    )


def schedule_exam_out(service: ExamSchedulingService, slot: ExamSlot) -> ScheduleExamOut:
    summary = service.orchestrator.slot_summary(slot)
    return ScheduleExamOut(
        id=summary["id"],
        exam_date=summary["exam_date"],
        start_time=summary["start_time"],
        end_time=summary["end_time"],
        subject=summary["subject"],
        room=summary["room"],
        student_count=summary["student_count"],
    )


def faculty_slot_out(service: ExamSchedulingService, slot: ExamSlot) -> FacultySlotOut:
    summary = SlotSummary(**{k: v for k, v in service.orchestrator.slot_summary(slot).items()
                             if k != "student_count"})
    state = service.state
    with state.lock:
        faculty = state.faculty.get(slot.faculty_id) if slot.faculty_id is not None else None
        head = state.faculty.get(slot.exam_head_id) if slot.exam_head_id is not None else None
        return FacultySlotOut(
            id=summary.id,
            exam_date=summary.exam_date,
            start_time=summary.start_time,
            end_time=summary.end_time,
            subject=summary.subject,
            room=summary.room,
            faculty=FacultyLoadRef(id=faculty.id, name=faculty.name, department=faculty.department,
                                   workload=faculty.current_workload) if faculty else None,
            exam_head=faculty_ref(head) if head else None,
            invigilators=[faculty_ref(state.faculty[fid]) for fid in slot.invigilator_ids if fid in state.faculty],
        )


def workload_out(row: FacultyWorkload) -> FacultyWorkloadOut:
    member = row.faculty
    return FacultyWorkloadOut(
        id=member.id,
        name=member.name,
        department=member.department,
        current_workload=member.current_workload,
        workload_capacity=member.workload_capacity,
        usage_percentage=row.usage_percentage,
        availability_slots=row.availability_slots,
        is_exam_head=member.can_be_exam_head,
        is_invigilator=member.can_invigilate,
    )


def exam_record_out(service: ExamSchedulingService, record: ExamRecord) -> ExamRecordOut:
    with service.state.lock:
        subject = service.state.subjects.get(record.subject_id) if record.subject_id is not None else None
    return ExamRecordOut(
        id=record.id,
        exam_name=record.exam_name,
        subject=record.subject,
        subject_entity=SubjectRef(id=subject.id, name=subject.name, code=subject.code) if subject else None,
        exam_date=record.exam_date,
        start_time=record.start_time,
        duration=record.duration,
        status=record.status,
        description=record.description,
    )
