from __future__ import annotations
import logging
from typing import Optional

from exam_allocation.models import (
    ExamSlot,
    ROLE_EXAM_HEAD,
    ROLE_FACULTY,
    ROLE_INVIGILATOR,
    ROLE_ROOM,
)
from exam_allocation.services.availability import FACULTY, ROOM
from exam_allocation.services.state import State

logger = logging.getLogger(__name__)


class BookingLedger:
    """Commits and releases resources on slots.

    The slot fields, the availability index and faculty workloads change
    together here and nowhere else. Callers hold the state lock and have
    already checked that the resource is free.
    """

    def __init__(self, state: State) -> None:
        self.state = state

    def book_room(self, slot: ExamSlot, room_id: int) -> None:
        self.release_room(slot)
        slot.room_id = room_id
        self.state.index.reserve(ROOM, room_id, slot.window, slot.id, ROLE_ROOM)

    def release_room(self, slot: ExamSlot) -> Optional[int]:
        room_id = slot.room_id
        if room_id is not None:
            self.state.index.release(ROOM, room_id, slot.id, ROLE_ROOM)
            slot.room_id = None
        return room_id

    def book_faculty(self, slot: ExamSlot, role: str, faculty_id: int) -> None:
        if role == ROLE_FACULTY:
            self.release_faculty(slot, role)
            slot.faculty_id = faculty_id
        elif role == ROLE_EXAM_HEAD:
            self.release_faculty(slot, role)
            slot.exam_head_id = faculty_id
        else:
            slot.invigilator_ids.append(faculty_id)
        self.state.index.reserve(FACULTY, faculty_id, slot.window, slot.id, role)
        self.state.faculty[faculty_id].current_workload += 1

    def release_faculty(self, slot: ExamSlot, role: str, faculty_id: Optional[int] = None) -> Optional[int]:
        """Releases the holder of ``role``; invigilators need ``faculty_id``."""
        if role == ROLE_FACULTY:
            faculty_id, slot.faculty_id = slot.faculty_id, None
        elif role == ROLE_EXAM_HEAD:
            faculty_id, slot.exam_head_id = slot.exam_head_id, None
        elif faculty_id in slot.invigilator_ids:
            slot.invigilator_ids.remove(faculty_id)
        else:
            return None
        if faculty_id is None:
            return None
        self.state.index.release(FACULTY, faculty_id, slot.id, role)
        member = self.state.faculty.get(faculty_id)
        if member is not None:
            member.current_workload = max(0, member.current_workload - 1)
        return faculty_id

    def release_invigilators(self, slot: ExamSlot) -> None:
        for faculty_id in list(slot.invigilator_ids):
            self.release_faculty(slot, ROLE_INVIGILATOR, faculty_id)

    def release_all(self, slot: ExamSlot) -> None:
        self.release_room(slot)
        self.release_faculty(slot, ROLE_FACULTY)
        self.release_faculty(slot, ROLE_EXAM_HEAD)
        self.release_invigilators(slot)
        logger.debug("Released every booking on slot %s", slot.id)
