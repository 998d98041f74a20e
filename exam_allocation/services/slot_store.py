from __future__ import annotations
import logging
from copy import deepcopy
from datetime import date
from typing import List, Optional, Tuple

from exam_allocation.errors import NotFound, ValidationError
from exam_allocation.models import ExamSlot, Schedule, Subject, Window
from exam_allocation.services.booking import BookingLedger
from exam_allocation.services.state import State

logger = logging.getLogger(__name__)


def chronological(slots: List[ExamSlot]) -> List[ExamSlot]:
    return sorted(slots, key=lambda s: (s.window.start_at, s.id))


def split_enrolment(subject: Subject, student_count: int) -> Tuple[int, int]:
    """Splits a slot's head count into (regular, backlog) in the subject's enrolment ratio."""
    total = subject.total_students
    if total == 0:
        return student_count, 0
    backlog = round(student_count * subject.backlog_students / total)
    return student_count - backlog, backlog


class SlotStore:
    """Schedules and their exam slots."""

    def __init__(self, state: State, ledger: BookingLedger) -> None:
        self.state = state
        self.ledger = ledger

    # --- Schedules ---
    def list_schedules(self) -> List[Schedule]:
        with self.state.lock:
            return deepcopy(sorted(self.state.schedules.values(), key=lambda s: s.id))

    def get_schedule(self, schedule_id: int) -> Schedule:
        with self.state.lock:
            return deepcopy(self._schedule(schedule_id))

    def create_schedule(self, name: str, start_date: date, end_date: date,
                        program_ids: Optional[List[int]] = None, include_weekends: bool = False) -> Schedule:
        if not name or not name.strip():
            raise ValidationError("Schedule name must not be empty")
        if start_date > end_date:
            raise ValidationError("Schedule start date must not be after its end date")
        with self.state.lock:
            schedule = Schedule(self.state.next_id("schedule"), name.strip(), start_date, end_date,
                                list(program_ids or []), include_weekends)
            self.state.schedules[schedule.id] = schedule
            logger.info("Created schedule %s '%s' (%s..%s)", schedule.id, schedule.name, start_date, end_date)
            return deepcopy(schedule)

    def delete_schedule(self, schedule_id: int) -> None:
        with self.state.lock:
            schedule = self._schedule(schedule_id)
            for slot_id in list(schedule.slot_ids):
                self._drop_slot(slot_id)
            del self.state.schedules[schedule_id]
            logger.info("Deleted schedule %s", schedule_id)

    # --- Slots ---
    def list_slots(self, schedule_id: Optional[int] = None) -> List[ExamSlot]:
        with self.state.lock:
            if schedule_id is None:
                slots = list(self.state.slots.values())
            else:
                slots = [self.state.slots[sid] for sid in self._schedule(schedule_id).slot_ids]
            return deepcopy(chronological(slots))

    def get_slot(self, slot_id: int) -> ExamSlot:
        with self.state.lock:
            return deepcopy(self.slot(slot_id))

    def add_slot(self, schedule_id: int, subject_id: int, window: Window,
                 student_count: Optional[int] = None) -> ExamSlot:
        with self.state.lock:
            return deepcopy(self.insert_slot(schedule_id, subject_id, window, student_count))

    def delete_slot(self, slot_id: int) -> None:
        with self.state.lock:
            slot = self.slot(slot_id)
            self.state.schedules[slot.schedule_id].slot_ids.remove(slot_id)
            self._drop_slot(slot_id)

    # Callers hold the lock for the helpers below.
    def insert_slot(self, schedule_id: int, subject_id: int, window: Window,
                    student_count: Optional[int] = None) -> ExamSlot:
        schedule = self._schedule(schedule_id)
        subject = self.state.subjects.get(subject_id)
        if subject is None:
            raise NotFound(f"Subject {subject_id} not found")
        if not schedule.start_date <= window.date <= schedule.end_date:
            raise ValidationError(
                f"Exam date {window.date} is outside schedule range {schedule.start_date}..{schedule.end_date}"
            )
        if window.start >= window.end:
            raise ValidationError("Slot start time must be before its end time")
        if student_count is None:
            student_count = subject.total_students
        elif student_count < 0:
            raise ValidationError("studentCount must not be negative")
        regular, backlog = split_enrolment(subject, student_count)
        slot = ExamSlot(self.state.next_id("slot"), schedule_id, subject_id, window,
                        student_count, regular, backlog)
        self.state.slots[slot.id] = slot
        schedule.slot_ids.append(slot.id)
        logger.info("Added slot %s for subject %s on %s %s-%s", slot.id, subject.code,
                    window.date, window.start, window.end)
        return slot

    def slot(self, slot_id: int) -> ExamSlot:
        slot = self.state.slots.get(slot_id)
        if slot is None:
            raise NotFound(f"Exam slot {slot_id} not found")
        return slot

    def _drop_slot(self, slot_id: int) -> None:
        slot = self.state.slots.pop(slot_id)
        self.ledger.release_all(slot)

    def _schedule(self, schedule_id: int) -> Schedule:
        schedule = self.state.schedules.get(schedule_id)
        if schedule is None:
            raise NotFound(f"Schedule {schedule_id} not found")
        return schedule
