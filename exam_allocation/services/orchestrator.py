from __future__ import annotations
import logging
from copy import deepcopy
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from exam_allocation import config
from exam_allocation.errors import NotFound, UpstreamUnavailable, ValidationError
from exam_allocation.models import ExamSlot, Faculty, Schedule, Subject, Window
from exam_allocation.services.dispatch import EMAIL, EXPORT, DispatchGateway, DispatchOutcome, LoggingDispatchGateway
from exam_allocation.services.slot_store import SlotStore
from exam_allocation.services.state import State
from exam_allocation.services.strategies import SessionRoundRobin, SlotStrategy, exam_days

logger = logging.getLogger(__name__)


@dataclass
class ExamStats:
    total_exams: int
    upcoming_exams: int
    pending_exams: int
    timestamp: datetime


@dataclass
class RangeStats:
    total_in_range: int
    start_date: date
    end_date: date
    slots: List[ExamSlot]


@dataclass
class SubjectCount:
    subject_id: int
    subject: str
    code: str
    count: int


@dataclass
class FacultyWorkload:
    faculty: Faculty
    usage_percentage: float
    availability_slots: int


class ScheduleOrchestrator:
    """Schedule generation, reporting views and export/email dispatch."""

    def __init__(self, state: State, store: SlotStore, clock: Callable[[], datetime] = datetime.now,
                 strategy: Optional[SlotStrategy] = None, gateway: Optional[DispatchGateway] = None) -> None:
        self.state = state
        self.store = store
        self.clock = clock
        self.strategy = strategy or SessionRoundRobin()
        self.gateway = gateway or LoggingDispatchGateway()

    def today(self) -> date:
        return self.clock().date()

    # --- Generation ---
    def generate_schedule(self, name: str, start_date: date, end_date: date,
                          program_ids: Optional[List[int]] = None, include_weekends: bool = False,
                          strategy: Optional[SlotStrategy] = None) -> Schedule:
        """Creates a schedule plus one unassigned slot per planned sitting.

        The strategy decides how subjects map onto dates and times. Its plans
        are checked before anything is stored, so a bad plan leaves no
        half-built schedule behind.
        """
        if not name or not name.strip():
            raise ValidationError("Schedule name must not be empty")
        if start_date > end_date:
            raise ValidationError("Schedule start date must not be after its end date")
        if not exam_days(start_date, end_date, include_weekends):
            raise ValidationError("The date range contains no exam days")
        strategy = strategy or self.strategy
        program_ids = list(program_ids or [])
        with self.state.lock:
            for program_id in program_ids:
                if program_id not in self.state.programs:
                    raise NotFound(f"Program {program_id} not found")
            subjects = self._subjects_in_scope(program_ids)
            plans = list(strategy(start_date, end_date, deepcopy(subjects), include_weekends))
            in_scope = {s.id for s in subjects}
            windows = []
            for plan in plans:
                if plan.subject_id not in in_scope:
                    raise ValidationError(f"Subject {plan.subject_id} is not part of the requested programs")
                if not start_date <= plan.date <= end_date:
                    raise ValidationError(f"Planned date {plan.date} is outside {start_date}..{end_date}")
                if plan.student_count < 0:
                    raise ValidationError("Planned student count must not be negative")
                windows.append(Window.checked(plan.date, plan.start, plan.end))

            schedule = self.store.create_schedule(name, start_date, end_date, program_ids, include_weekends)
            for plan, window in zip(plans, windows):
                subject = self.state.subjects[plan.subject_id]
                count = None if plan.student_count == subject.total_students else plan.student_count
                self.store.insert_slot(schedule.id, plan.subject_id, window, count)
            logger.info("Generated schedule %s '%s' with %d slots", schedule.id, schedule.name, len(plans))
            return self.store.get_schedule(schedule.id)

    def _subjects_in_scope(self, program_ids: List[int]) -> List[Subject]:
        subjects = sorted(self.state.subjects.values(), key=lambda s: s.id)
        if program_ids:
            subjects = [s for s in subjects if s.program_id in program_ids]
        return subjects

    # --- Reporting ---
    def exam_stats(self) -> ExamStats:
        now = self.clock()
        try:
            slots = self.store.list_slots()
        except UpstreamUnavailable as e:
            logger.warning("Exam stats degraded to zero: %s", e)
            return ExamStats(0, 0, 0, now)
        today = now.date()
        horizon = today + timedelta(days=config.UPCOMING_DAYS)
        return ExamStats(
            total_exams=len(slots),
            upcoming_exams=sum(1 for s in slots if today <= s.window.date <= horizon),
            pending_exams=sum(1 for s in slots if not s.is_fully_assigned),
            timestamp=now,
        )

    def exam_stats_in_range(self, start_date: date, end_date: date) -> RangeStats:
        if start_date > end_date:
            raise ValidationError("startDate must not be after endDate")
        try:
            slots = self.store.list_slots()
        except UpstreamUnavailable as e:
            logger.warning("Range stats degraded to zero: %s", e)
            return RangeStats(0, start_date, end_date, [])
        in_range = [s for s in slots if start_date <= s.window.date <= end_date]
        return RangeStats(len(in_range), start_date, end_date, in_range)

    def subject_distribution(self) -> List[SubjectCount]:
        try:
            with self.state.lock:
                subjects = sorted(self.state.subjects.values(), key=lambda s: s.id)
                slots = self.store.list_slots()
        except UpstreamUnavailable as e:
            logger.warning("Subject distribution degraded to zero: %s", e)
            return [SubjectCount(s.id, s.name, s.code, 0) for s in subjects]
        counts: Dict[int, int] = {}
        for slot in slots:
            counts[slot.subject_id] = counts.get(slot.subject_id, 0) + 1
        rows = [SubjectCount(s.id, s.name, s.code, counts.get(s.id, 0)) for s in subjects]
        return sorted(rows, key=lambda r: (-r.count, r.code))

    def slots_for_subject(self, term: str) -> List[ExamSlot]:
        """Slots whose subject name or code equals ``term`` (case-insensitive)."""
        term = term.strip().lower()
        with self.state.lock:
            ids = {s.id for s in self.state.subjects.values()
                   if s.name.lower() == term or s.code.lower() == term}
            return [slot for slot in self.store.list_slots() if slot.subject_id in ids]

    def upcoming_slots(self, term: Optional[str] = None) -> List[ExamSlot]:
        today = self.today()
        horizon = today + timedelta(days=config.UPCOMING_DAYS)
        slots = self.slots_for_subject(term) if term else self.store.list_slots()
        return [s for s in slots if today <= s.window.date <= horizon]

    def faculty_workload(self) -> List[FacultyWorkload]:
        with self.state.lock:
            rows = []
            for member in sorted(self.state.faculty.values(), key=lambda f: f.id):
                usage = (100.0 * member.current_workload / member.workload_capacity
                         if member.workload_capacity else 0.0)
                rows.append(FacultyWorkload(deepcopy(member), round(usage, 1), len(member.availability)))
            return rows

    # --- Summaries shared by the API and the dispatch document ---
    def slot_summary(self, slot: ExamSlot) -> Dict[str, Any]:
        with self.state.lock:
            subject = self.state.subjects.get(slot.subject_id)
            room = self.state.rooms.get(slot.room_id) if slot.room_id is not None else None
            return {
                "id": slot.id,
                "exam_date": slot.window.date,
                "start_time": slot.window.start,
                "end_time": slot.window.end,
                "subject": subject.name if subject else "",
                "room": room.room_number if room else "",
                "faculty": self._faculty_name(slot.faculty_id),
                "exam_head": self._faculty_name(slot.exam_head_id),
                "invigilators": [self._faculty_name(fid) for fid in slot.invigilator_ids],
                "student_count": slot.student_count,
            }

    def _faculty_name(self, faculty_id: Optional[int]) -> str:
        member = self.state.faculty.get(faculty_id) if faculty_id is not None else None
        return member.name if member else ""

    # --- Export / email ---
    def export_schedule(self, schedule_id: int) -> DispatchOutcome:
        return self._dispatch(schedule_id, EXPORT)

    def email_schedule(self, schedule_id: int) -> DispatchOutcome:
        return self._dispatch(schedule_id, EMAIL)

    def _dispatch(self, schedule_id: int, action: str) -> DispatchOutcome:
        with self.state.lock:
            schedule = self.store.get_schedule(schedule_id)
            document = {
                "id": schedule.id,
                "name": schedule.name,
                "start_date": schedule.start_date.isoformat(),
                "end_date": schedule.end_date.isoformat(),
                "slots": [self.slot_summary(s) for s in self.store.list_slots(schedule_id)],
            }
        send = self.gateway.export_schedule if action == EXPORT else self.gateway.email_schedule
        try:
            send(document)
        except UpstreamUnavailable as e:
            logger.warning("%s of schedule %s failed: %s", action.capitalize(), schedule_id, e)
            return DispatchOutcome(schedule_id, action, False, e.message)
        return DispatchOutcome(schedule_id, action, True, f"Schedule {schedule_id} {action} requested")
