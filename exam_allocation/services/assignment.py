from __future__ import annotations
import logging
from copy import deepcopy

from exam_allocation.errors import Conflict, NotFound, ValidationError
from exam_allocation.models import (
    ExamSlot,
    Faculty,
    ROLE_EXAM_HEAD,
    ROLE_FACULTY,
    ROLE_INVIGILATOR,
    ROLE_ROOM,
)
from exam_allocation.services.availability import FACULTY, ROOM
from exam_allocation.services.booking import BookingLedger
from exam_allocation.services.slot_store import SlotStore
from exam_allocation.services.state import State

logger = logging.getLogger(__name__)


class AssignmentService:
    """Administrator-driven assignments on a single slot.

    Every assignment checks the resource is free for the slot's window and
    raises Conflict instead of overwriting another booking. Workload capacity
    is not enforced here; administrators may overload a faculty member.
    """

    def __init__(self, state: State, store: SlotStore, ledger: BookingLedger) -> None:
        self.state = state
        self.store = store
        self.ledger = ledger

    def assign_room(self, slot_id: int, room_id: int) -> ExamSlot:
        with self.state.lock:
            slot = self.store.slot(slot_id)
            room = self.state.rooms.get(room_id)
            if room is None:
                raise NotFound(f"Room {room_id} not found")
            if slot.room_id == room_id:
                return deepcopy(slot)
            if not room.is_available:
                raise Conflict(f"Room {room.room_number} is marked unavailable")
            if room.capacity < slot.student_count:
                raise ValidationError(
                    f"Room {room.room_number} seats {room.capacity}, slot needs {slot.student_count}"
                )
            if not self.state.index.is_free(ROOM, room_id, slot.window, {(slot.id, ROLE_ROOM)}):
                raise Conflict(f"Room {room.room_number} is already booked for an overlapping slot")
            self.ledger.book_room(slot, room_id)
            logger.info("Room %s assigned to slot %s", room_id, slot_id)
            return deepcopy(slot)

    def assign_faculty(self, slot_id: int, faculty_id: int) -> ExamSlot:
        return self._assign_role(slot_id, faculty_id, ROLE_FACULTY)

    def assign_exam_head(self, slot_id: int, faculty_id: int) -> ExamSlot:
        return self._assign_role(slot_id, faculty_id, ROLE_EXAM_HEAD)

    def add_invigilator(self, slot_id: int, faculty_id: int) -> ExamSlot:
        return self._assign_role(slot_id, faculty_id, ROLE_INVIGILATOR)

    def remove_invigilator(self, slot_id: int, faculty_id: int) -> ExamSlot:
        """Removes one invigilator; a faculty member not on the slot is NotFound."""
        with self.state.lock:
            slot = self.store.slot(slot_id)
            if faculty_id not in slot.invigilator_ids:
                raise NotFound(f"Faculty {faculty_id} is not an invigilator of slot {slot_id}")
            self.ledger.release_faculty(slot, ROLE_INVIGILATOR, faculty_id)
            logger.info("Invigilator %s removed from slot %s", faculty_id, slot_id)
            return deepcopy(slot)

    def unassign_room(self, slot_id: int) -> ExamSlot:
        with self.state.lock:
            slot = self.store.slot(slot_id)
            self.ledger.release_room(slot)
            return deepcopy(slot)

    def unassign_faculty(self, slot_id: int) -> ExamSlot:
        return self._unassign_role(slot_id, ROLE_FACULTY)

    def unassign_exam_head(self, slot_id: int) -> ExamSlot:
        return self._unassign_role(slot_id, ROLE_EXAM_HEAD)

    def _assign_role(self, slot_id: int, faculty_id: int, role: str) -> ExamSlot:
        with self.state.lock:
            slot = self.store.slot(slot_id)
            member = self.state.faculty.get(faculty_id)
            if member is None:
                raise NotFound(f"Faculty {faculty_id} not found")
            if self._holds(slot, role, faculty_id):
                return deepcopy(slot)
            self._check_capability(member, role)
            if not member.declares(slot.window):
                raise Conflict(f"{member.name} has not declared availability for this slot")
            ignore = set() if role == ROLE_INVIGILATOR else {(slot.id, role)}
            if not self.state.index.is_free(FACULTY, faculty_id, slot.window, ignore):
                raise Conflict(f"{member.name} is already committed to an overlapping slot")
            self.ledger.book_faculty(slot, role, faculty_id)
            logger.info("Faculty %s assigned to slot %s as %s", faculty_id, slot_id, role)
            return deepcopy(slot)

    def _unassign_role(self, slot_id: int, role: str) -> ExamSlot:
        with self.state.lock:
            slot = self.store.slot(slot_id)
            released = self.ledger.release_faculty(slot, role)
            if released is not None:
                logger.info("Faculty %s released from slot %s (%s)", released, slot_id, role)
            return deepcopy(slot)

    @staticmethod
    def _holds(slot: ExamSlot, role: str, faculty_id: int) -> bool:
        if role == ROLE_FACULTY:
            return slot.faculty_id == faculty_id
        if role == ROLE_EXAM_HEAD:
            return slot.exam_head_id == faculty_id
        return False

    @staticmethod
    def _check_capability(member: Faculty, role: str) -> None:
        if role == ROLE_EXAM_HEAD and not member.can_be_exam_head:
            raise ValidationError(f"{member.name} cannot act as exam head")
        if role == ROLE_INVIGILATOR and not member.can_invigilate:
            raise ValidationError(f"{member.name} cannot invigilate")
