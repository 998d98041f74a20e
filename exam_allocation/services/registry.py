from __future__ import annotations
import logging
from copy import deepcopy
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Optional

from exam_allocation import config
from exam_allocation.errors import Conflict, NotFound, ValidationError
from exam_allocation.models import Faculty, Program, Room, Student, Subject, Window
from exam_allocation.services.availability import FACULTY, ROOM
from exam_allocation.services.state import State

logger = logging.getLogger(__name__)

ROOM_AVAILABLE = "available"
ROOM_UNAVAILABLE = "unavailable"
ROOM_OCCUPIED = "occupied"


def _require(value, entity: str, entity_id: int):
    if value is None:
        raise NotFound(f"{entity} {entity_id} not found")
    return value


def _non_negative(**values: int) -> None:
    for name, value in values.items():
        if value is not None and value < 0:
            raise ValidationError(f"{name} must not be negative")


def _non_blank(**values: str) -> None:
    for name, value in values.items():
        if not value or not value.strip():
            raise ValidationError(f"{name} must not be empty")


class ResourceRegistry:
    """Rooms, faculty, programs, subjects and students."""

    def __init__(self, state: State, clock: Callable[[], datetime] = datetime.now) -> None:
        self.state = state
        self.clock = clock

    # --- Rooms ---
    def list_rooms(self) -> List[Room]:
        with self.state.lock:
            return deepcopy(sorted(self.state.rooms.values(), key=lambda r: r.id))

    def get_room(self, room_id: int) -> Room:
        with self.state.lock:
            return deepcopy(self._room(room_id))

    def create_room(self, room_number: str, capacity: int, building: str = "", floor: str = "",
                    room_type: str = "CLASSROOM", is_available: bool = True, room_id: Optional[int] = None) -> Room:
        _non_blank(room_number=room_number)
        _non_negative(capacity=capacity)
        with self.state.lock:
            room_id = self._claim_id("room", room_id, self.state.rooms)
            room = Room(room_id, room_number, building, floor, capacity, room_type, is_available)
            self.state.rooms[room_id] = room
            logger.info("Created room %s (%s, capacity %d)", room_id, room_number, capacity)
            return deepcopy(room)

    def update_room(self, room_id: int, **changes) -> Room:
        if "room_number" in changes:
            _non_blank(room_number=changes["room_number"])
        _non_negative(capacity=changes.get("capacity"))
        with self.state.lock:
            room = self._room(room_id)
            if changes.get("is_available") is False and room.is_available:
                self._check_can_withdraw(room)
            if changes.get("capacity") is not None:
                self._check_fits_bookings(room, changes["capacity"])
            for name, value in changes.items():
                setattr(room, name, value)
            logger.info("Updated room %s", room_id)
            return deepcopy(room)

    def delete_room(self, room_id: int) -> None:
        with self.state.lock:
            self._room(room_id)
            if self.state.index.bookings(ROOM, room_id):
                raise Conflict(f"Room {room_id} is assigned to exam slots")
            del self.state.rooms[room_id]
            logger.info("Deleted room %s", room_id)

    def set_room_availability(self, room_id: int, available: bool) -> Room:
        with self.state.lock:
            room = self._room(room_id)
            if not available and room.is_available:
                self._check_can_withdraw(room)
            room.is_available = available
            logger.info("Room %s availability set to %s", room_id, available)
            return deepcopy(room)

    def room_status(self, room: Room) -> str:
        if not room.is_available:
            return ROOM_UNAVAILABLE
        now = self.clock()
        with self.state.lock:
            for start, end, _, _ in self.state.index.bookings(ROOM, room.id):
                if start <= now < end:
                    return ROOM_OCCUPIED
        return ROOM_AVAILABLE

    def room_stats(self) -> Dict[str, int]:
        with self.state.lock:
            rooms = list(self.state.rooms.values())
            return {
                "total_rooms": len(rooms),
                "total_capacity": sum(r.capacity for r in rooms),
                "available_rooms": sum(1 for r in rooms if r.is_available),
            }

    def _check_can_withdraw(self, room: Room) -> None:
        if self.state.index.has_bookings_ending_after(ROOM, room.id, self.clock()):
            raise Conflict(f"Room {room.id} is assigned to a current or upcoming exam slot")

    def _check_fits_bookings(self, room: Room, capacity: int) -> None:
        for _, _, slot_id, _ in self.state.index.bookings(ROOM, room.id):
            slot = self.state.slots[slot_id]
            if slot.student_count > capacity:
                raise Conflict(
                    f"Room {room.id} hosts exam slot {slot_id} with {slot.student_count} students; "
                    f"capacity {capacity} is too small"
                )

    def _room(self, room_id: int) -> Room:
        return _require(self.state.rooms.get(room_id), "Room", room_id)

    # --- Faculty ---
    def list_faculty(self) -> List[Faculty]:
        with self.state.lock:
            return deepcopy(sorted(self.state.faculty.values(), key=lambda f: f.id))

    def get_faculty(self, faculty_id: int) -> Faculty:
        with self.state.lock:
            return deepcopy(self._faculty(faculty_id))

    def create_faculty(self, name: str, department: str = "",
                       workload_capacity: int = config.DEFAULT_WORKLOAD_CAPACITY,
                       current_workload: int = 0, can_be_exam_head: bool = False,
                       can_invigilate: bool = True, faculty_id: Optional[int] = None) -> Faculty:
        _non_blank(name=name)
        _non_negative(workload_capacity=workload_capacity, current_workload=current_workload)
        with self.state.lock:
            faculty_id = self._claim_id("faculty", faculty_id, self.state.faculty)
            member = Faculty(faculty_id, name, department, workload_capacity, current_workload,
                             can_be_exam_head, can_invigilate)
            self.state.faculty[faculty_id] = member
            logger.info("Created faculty %s (%s)", faculty_id, name)
            return deepcopy(member)

    def delete_faculty(self, faculty_id: int) -> None:
        with self.state.lock:
            self._faculty(faculty_id)
            if self.state.index.bookings(FACULTY, faculty_id):
                raise Conflict(f"Faculty {faculty_id} is assigned to exam slots")
            del self.state.faculty[faculty_id]

    def add_faculty_availability(self, faculty_id: int, window: Window) -> Window:
        with self.state.lock:
            member = self._faculty(faculty_id)
            if window not in member.availability:
                member.availability.append(window)
                member.availability.sort(key=lambda w: w.start_at)
            return window

    def _faculty(self, faculty_id: int) -> Faculty:
        return _require(self.state.faculty.get(faculty_id), "Faculty", faculty_id)

    # --- Programs and subjects ---
    def list_programs(self) -> List[Program]:
        with self.state.lock:
            return deepcopy(sorted(self.state.programs.values(), key=lambda p: p.id))

    def create_program(self, name: str, department: str = "", code: str = "",
                       program_id: Optional[int] = None) -> Program:
        _non_blank(name=name)
        with self.state.lock:
            program_id = self._claim_id("program", program_id, self.state.programs)
            program = Program(program_id, name, department, code)
            self.state.programs[program_id] = program
            return deepcopy(program)

    def get_program(self, program_id: int) -> Program:
        with self.state.lock:
            return deepcopy(_require(self.state.programs.get(program_id), "Program", program_id))

    def list_subjects(self, program_id: Optional[int] = None) -> List[Subject]:
        with self.state.lock:
            subjects = sorted(self.state.subjects.values(), key=lambda s: s.id)
            if program_id is not None:
                subjects = [s for s in subjects if s.program_id == program_id]
            return deepcopy(subjects)

    def get_subject(self, subject_id: int) -> Subject:
        with self.state.lock:
            return deepcopy(self._subject(subject_id))

    def create_subject(self, name: str, code: str, program_id: Optional[int] = None,
                       regular_students: int = 0, backlog_students: int = 0,
                       subject_id: Optional[int] = None) -> Subject:
        _non_blank(name=name, code=code)
        _non_negative(regular_students=regular_students, backlog_students=backlog_students)
        with self.state.lock:
            if program_id is not None:
                _require(self.state.programs.get(program_id), "Program", program_id)
            subject_id = self._claim_id("subject", subject_id, self.state.subjects)
            subject = Subject(subject_id, name, code, program_id, regular_students, backlog_students)
            self.state.subjects[subject_id] = subject
            return deepcopy(subject)

    def _subject(self, subject_id: int) -> Subject:
        return _require(self.state.subjects.get(subject_id), "Subject", subject_id)

    # --- Students ---
    def list_students(self) -> List[Student]:
        with self.state.lock:
            return deepcopy(sorted(self.state.students.values(), key=lambda s: s.id))

    def get_student(self, student_pk: int) -> Student:
        with self.state.lock:
            return deepcopy(self._student(student_pk))

    def create_student(self, student_id: str, name: str, email: str, student_pk: Optional[int] = None,
                       **details) -> Student:
        _non_blank(student_id=student_id, name=name, email=email)
        _non_negative(semester=details.get("semester"))
        with self.state.lock:
            self._check_unique_student_id(student_id)
            self._check_program(details.get("program_id"))
            student_pk = self._claim_id("student", student_pk, self.state.students)
            student = Student(student_pk, student_id, name, email, **details)
            self.state.students[student_pk] = student
            return deepcopy(student)

    def update_student(self, student_pk: int, **changes) -> Student:
        _non_negative(semester=changes.get("semester"))
        with self.state.lock:
            student = self._student(student_pk)
            if changes.get("student_id") not in (None, student.student_id):
                self._check_unique_student_id(changes["student_id"])
            self._check_program(changes.get("program_id"))
            for name, value in changes.items():
                setattr(student, name, value)
            return deepcopy(student)

    def delete_student(self, student_pk: int) -> None:
        with self.state.lock:
            self._student(student_pk)
            del self.state.students[student_pk]

    def student_stats(self) -> Dict[str, object]:
        with self.state.lock:
            students = list(self.state.students.values())
            by_program: Counter = Counter()
            for student in students:
                program = self.state.programs.get(student.program_id)
                by_program[program.name if program else "Unassigned"] += 1
            by_semester = Counter(str(s.semester) for s in students)
            return {
                "total": len(students),
                "by_program": dict(by_program),
                "by_semester": dict(by_semester),
            }

    def _check_unique_student_id(self, student_id: str) -> None:
        if any(s.student_id == student_id for s in self.state.students.values()):
            raise Conflict(f"Student id {student_id} already exists")

    def _check_program(self, program_id: Optional[int]) -> None:
        if program_id is not None:
            _require(self.state.programs.get(program_id), "Program", program_id)

    def _student(self, student_pk: int) -> Student:
        return _require(self.state.students.get(student_pk), "Student", student_pk)

    def _claim_id(self, kind: str, requested: Optional[int], existing: dict) -> int:
        if requested is None:
            new_id = self.state.next_id(kind)
            while new_id in existing:
                new_id = self.state.next_id(kind)
            return new_id
        if requested in existing:
            raise Conflict(f"{kind.capitalize()} {requested} already exists")
        self.state.reserve_id(kind, requested)
        return requested
