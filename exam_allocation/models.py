from __future__ import annotations
from typing import List, Optional
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from exam_allocation.errors import ValidationError


ROLE_ROOM = "room"
ROLE_FACULTY = "faculty"
ROLE_EXAM_HEAD = "exam_head"
ROLE_INVIGILATOR = "invigilator"


@dataclass(frozen=True)
class Window:
    """A date plus a half-open [start, end) time range."""

    date: date
    start: time
    end: time

    @classmethod
    def checked(cls, day: date, start: time, end: time) -> "Window":
        if start >= end:
            raise ValidationError(f"Start time {start} must be before end time {end}")
        return cls(day, start, end)

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.date, self.start)

    @property
    def end_at(self) -> datetime:
        return datetime.combine(self.date, self.end)

    def overlaps(self, other: "Window") -> bool:
        return self.start_at < other.end_at and other.start_at < self.end_at

    def contains(self, other: "Window") -> bool:
        return self.start_at <= other.start_at and other.end_at <= self.end_at


@dataclass
class Program:
    id: int
    name: str
    department: str = ""
    code: str = ""


@dataclass
class Room:
    id: int
    room_number: str
    building: str = ""
    floor: str = ""
    capacity: int = 0
    room_type: str = "CLASSROOM"
    is_available: bool = True


@dataclass
class Faculty:
    id: int
    name: str
    department: str = ""
    workload_capacity: int = 0
    current_workload: int = 0
    can_be_exam_head: bool = False
    can_invigilate: bool = True
    availability: List[Window] = field(default_factory=list)

    @property
    def load_ratio(self) -> float:
        if self.workload_capacity <= 0:
            return float("inf")
        return self.current_workload / self.workload_capacity

    def declares(self, window: Window) -> bool:
        # No declared windows means available at any time.
        if not self.availability:
            return True
        return any(declared.contains(window) for declared in self.availability)


@dataclass
class Subject:
    id: int
    name: str
    code: str
    program_id: Optional[int] = None
    regular_students: int = 0
    backlog_students: int = 0

    @property
    def total_students(self) -> int:
        return self.regular_students + self.backlog_students


@dataclass
class Student:
    id: int
    student_id: str
    name: str
    email: str
    program_id: Optional[int] = None
    semester: int = 1
    status: str = "ACTIVE"
    phone: Optional[str] = None
    enrollment_date: Optional[date] = None
    address: Optional[str] = None


@dataclass
class ExamSlot:
    id: int
    schedule_id: int
    subject_id: int
    window: Window
    student_count: int = 0
    regular_student_count: int = 0
    backlog_student_count: int = 0
    room_id: Optional[int] = None
    faculty_id: Optional[int] = None
    exam_head_id: Optional[int] = None
    invigilator_ids: List[int] = field(default_factory=list)

    @property
    def slot_type(self) -> str:
        if self.regular_student_count and self.backlog_student_count:
            return "MIXED"
        if self.backlog_student_count:
            return "BACKLOG"
        return "REGULAR"

    @property
    def is_morning_slot(self) -> bool:
        return self.window.start < time(12, 0)

    def reporting_time(self, lead_minutes: int) -> time:
        return (self.window.start_at - timedelta(minutes=lead_minutes)).time()

    @property
    def is_fully_assigned(self) -> bool:
        return self.room_id is not None and self.faculty_id is not None

    def faculty_roles(self) -> List[tuple]:
        """(faculty_id, role) pairs currently booked on this slot."""
        roles = []
        if self.faculty_id is not None:
            roles.append((self.faculty_id, ROLE_FACULTY))
        if self.exam_head_id is not None:
            roles.append((self.exam_head_id, ROLE_EXAM_HEAD))
        roles.extend((fid, ROLE_INVIGILATOR) for fid in self.invigilator_ids)
        return roles


@dataclass
class Schedule:
    id: int
    name: str
    start_date: date
    end_date: date
    program_ids: List[int] = field(default_factory=list)
    include_weekends: bool = False
    slot_ids: List[int] = field(default_factory=list)

    def status(self, today: date) -> str:
        if today < self.start_date:
            return "pending"
        if today > self.end_date:
            return "completed"
        return "active"


EXAM_PENDING = "Pending"
EXAM_SCHEDULED = "Scheduled"
EXAM_COMPLETED = "Completed"
EXAM_CANCELLED = "Cancelled"
EXAM_STATUSES = (EXAM_PENDING, EXAM_SCHEDULED, EXAM_COMPLETED, EXAM_CANCELLED)
# Completed and cancelled exams are final.
EXAM_TRANSITIONS = {
    EXAM_PENDING: {EXAM_SCHEDULED, EXAM_COMPLETED, EXAM_CANCELLED},
    EXAM_SCHEDULED: {EXAM_PENDING, EXAM_COMPLETED, EXAM_CANCELLED},
    EXAM_COMPLETED: set(),
    EXAM_CANCELLED: set(),
}


@dataclass
class ExamRecord:
    """A catalogue entry for an exam, kept apart from the slots that seat it."""

    id: int
    exam_name: str
    exam_date: date
    start_time: time
    duration: int = 120
    subject: str = ""
    subject_id: Optional[int] = None
    status: str = EXAM_PENDING
    description: str = ""

    @property
    def is_final(self) -> bool:
        return not EXAM_TRANSITIONS[self.status]
