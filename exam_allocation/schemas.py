from __future__ import annotations
import datetime as dt
from datetime import date, datetime, time
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, conint
from pydantic.alias_generators import to_camel

from exam_allocation import config


class WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Programs and subjects ---
class ProgramIn(WireModel):
    name: str
    department: str = ""
    code: str = ""


class ProgramOut(ProgramIn):
    id: int


class ProgramRef(WireModel):
    id: int
    name: Optional[str] = None


class SubjectIn(WireModel):
    name: str
    code: str
    program_id: Optional[int] = None
    regular_students: conint(ge=0) = 0
    backlog_students: conint(ge=0) = 0


class SubjectOut(WireModel):
    id: int
    name: str
    code: str
    program: Optional[ProgramRef] = None
    total_students: int
    regular_students: int
    backlog_students: int
    enrolled_students: int


class SubjectRef(WireModel):
    id: int
    name: str
    code: str


# --- Rooms ---
class RoomIn(WireModel):
    room_number: str
    building: str = ""
    floor: Union[int, str] = ""
    seating_capacity: conint(ge=0)
    room_type: str = "CLASSROOM"
    is_available: bool = True


class RoomOut(WireModel):
    id: int
    room_number: str
    building: str
    floor: str
    seating_capacity: int
    room_type: str
    is_available: bool
    status: str = Field(description="available, unavailable or occupied")


class RoomRef(WireModel):
    id: int
    room_number: str
    capacity: int


class AvailabilityToggle(WireModel):
    is_available: bool


class TotalRoomsStats(WireModel):
    total_rooms: int


class TotalCapacityStats(WireModel):
    total_capacity: int


class AvailableRoomsStats(WireModel):
    available_rooms: int


# --- Faculty ---
class FacultyIn(WireModel):
    name: str
    department: str = ""
    workload_capacity: conint(ge=0) = config.DEFAULT_WORKLOAD_CAPACITY
    current_workload: conint(ge=0) = 0
    is_exam_head: bool = False
    is_invigilator: bool = True


class FacultyOut(WireModel):
    id: int
    name: str
    department: str
    current_workload: int
    workload_capacity: int
    is_exam_head: bool
    is_invigilator: bool


class FacultyRef(WireModel):
    id: int
    name: str
    department: str


class AvailabilityIn(WireModel):
    date: dt.date
    start_time: time
    end_time: time


class AvailabilityOut(AvailabilityIn):
    faculty: FacultyRef


# --- Students ---
class StudentIn(WireModel):
    student_id: str
    name: str
    email: str
    phone: Optional[str] = None
    program: Optional[ProgramRef] = None
    semester: conint(ge=0) = 1
    status: str = "ACTIVE"
    enrollment_date: Optional[date] = None
    address: Optional[str] = None


class StudentOut(StudentIn):
    id: int


class TotalStudentsStats(WireModel):
    total_students: int


class StudentsByProgramStats(WireModel):
    students_by_program: Dict[str, int]
    total_programs: int


class StudentsBySemesterStats(WireModel):
    students_by_semester: Dict[str, int]


# --- Schedules and slots ---
class ScheduleGenerateRequest(WireModel):
    program_ids: List[int] = Field(default_factory=list)
    include_weekends: bool = False


class ScheduleOut(WireModel):
    id: int
    name: str
    start_date: date
    end_date: date
    status: str
    program_ids: List[int]
    include_weekends: bool
    slot_count: int


class SlotCreate(WireModel):
    exam_date: date
    start_time: time
    end_time: time
    subject_id: int
    student_count: Optional[conint(ge=0)] = None


class ExamSlotOut(WireModel):
    id: int
    schedule_id: int
    exam_date: date
    start_time: time
    end_time: time
    reporting_time: time
    slot_type: str
    subject: Optional[SubjectRef] = None
    room: Optional[RoomRef] = None
    faculty: Optional[FacultyRef] = None
    exam_head: Optional[FacultyRef] = None
    invigilators: List[FacultyRef] = Field(default_factory=list)
    student_count: int
    regular_student_count: int
    backlog_student_count: int
    is_morning_slot: bool


class FacultyAssignRequest(WireModel):
    faculty_id: int


class RoomAssignRequest(WireModel):
    room_id: int


class ResourceAllocationRequest(WireModel):
    assign_faculty: bool = False
    assign_room: bool = False
    assign_invigilators: bool = False


class SlotSummary(WireModel):
    id: int
    exam_date: date
    start_time: time
    end_time: time
    subject: str
    room: str
    faculty: str
    exam_head: str
    invigilators: List[str]


class AllocatedSlot(SlotSummary):
    success: bool
    reason: Optional[str] = None
    message: Optional[str] = None


class AllocationResponse(WireModel):
    total_slots: int
    successful_allocations: int
    failed_allocations: int
    message: str
    slots: List[AllocatedSlot]


class DispatchResponse(WireModel):
    schedule_id: int
    action: str
    success: bool
    message: str


# --- Reporting ---
class ExamStatsOut(WireModel):
    total_exams: int
    upcoming_exams: int
    pending_exams: int
    timestamp: datetime


class ExamStatsRangeOut(WireModel):
    total_exams_in_range: int
    start_date: date
    end_date: date
    exams: List[ExamSlotOut]


class SubjectDistributionEntry(WireModel):
    subject_id: int
    subject: str
    code: str
    count: int


class ScheduleExamOut(WireModel):
    id: int
    exam_date: date
    start_time: time
    end_time: time
    subject: str
    room: str
    student_count: int


class FacultyLoadRef(FacultyRef):
    workload: int


class FacultySlotOut(WireModel):
    id: int
    exam_date: date
    start_time: time
    end_time: time
    subject: str
    room: str
    faculty: Optional[FacultyLoadRef] = None
    exam_head: Optional[FacultyRef] = None
    invigilators: List[FacultyRef] = Field(default_factory=list)


class FacultyWorkloadOut(WireModel):
    id: int
    name: str
    department: str
    current_workload: int
    workload_capacity: int
    usage_percentage: float
    availability_slots: int
    is_exam_head: bool
    is_invigilator: bool


# --- Exam records ---
class SubjectPick(WireModel):
    id: Optional[int] = None
    name: Optional[str] = None
    code: Optional[str] = None


class ExamRecordIn(WireModel):
    exam_name: str
    subject: str = ""
    subject_entity: Optional[SubjectPick] = None
    exam_date: date
    start_time: time
    duration: conint(gt=0) = 120
    status: Optional[str] = None
    description: str = ""


class ExamRecordOut(WireModel):
    id: int
    exam_name: str
    subject: str
    subject_entity: Optional[SubjectRef] = None
    exam_date: date
    start_time: time
    duration: int
    status: str
    description: str


class ExamStatusUpdate(WireModel):
    status: str
