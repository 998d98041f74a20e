from __future__ import annotations
import logging
import math
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from exam_allocation import config
from exam_allocation.errors import (
    NoFacultyAvailable,
    NoInvigilatorsAvailable,
    NoRoomAvailable,
    NotFound,
    ValidationError,
)
from exam_allocation.models import (
    ExamSlot,
    Faculty,
    ROLE_EXAM_HEAD,
    ROLE_FACULTY,
    ROLE_INVIGILATOR,
    ROLE_ROOM,
)
from exam_allocation.services.booking import BookingLedger
from exam_allocation.services.finder import ANY, EXAM_HEAD, INVIGILATOR, AvailabilityFinder
from exam_allocation.services.slot_store import SlotStore, chronological
from exam_allocation.services.state import State

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationOptions:
    assign_room: bool = False
    assign_faculty: bool = False
    assign_invigilators: bool = False

    def any(self) -> bool:
        return self.assign_room or self.assign_faculty or self.assign_invigilators


@dataclass
class AllocationPolicy:
    students_per_invigilator: int = config.STUDENTS_PER_INVIGILATOR
    max_invigilators: int = config.MAX_INVIGILATORS

    def invigilators_for(self, student_count: int) -> int:
        per = max(1, self.students_per_invigilator)
        return min(self.max_invigilators, max(1, math.ceil(student_count / per)))


@dataclass
class SlotOutcome:
    slot_id: int
    success: bool
    slot: Optional[ExamSlot] = None
    reason: Optional[str] = None
    message: Optional[str] = None


@dataclass
class AllocationReport:
    schedule_id: int
    outcomes: List[SlotOutcome] = field(default_factory=list)

    @property
    def total_slots(self) -> int:
        return len(self.outcomes)

    @property
    def successful_allocations(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed_allocations(self) -> int:
        return self.total_slots - self.successful_allocations

    @property
    def message(self) -> str:
        return (f"Allocated {self.successful_allocations} of {self.total_slots} slots"
                f" ({self.failed_allocations} failed)")


@dataclass
class _Plan:
    room_id: Optional[int] = None
    faculty_id: Optional[int] = None
    exam_head_id: Optional[int] = None
    invigilator_ids: List[int] = field(default_factory=list)


class AllocationEngine:
    """Greedy best-fit allocation of rooms, faculty, exam heads and invigilators."""

    def __init__(self, state: State, store: SlotStore, ledger: BookingLedger,
                 finder: AvailabilityFinder, policy: Optional[AllocationPolicy] = None) -> None:
        self.state = state
        self.store = store
        self.ledger = ledger
        self.finder = finder
        self.policy = policy or AllocationPolicy()

    # --- Public API ---
    def allocate_slot(self, slot_id: int, options: AllocationOptions) -> ExamSlot:
        """Recomputes every requested facet of one slot and commits them together.

        Facets not requested keep their current assignment. If any requested
        facet cannot be satisfied nothing is committed and the matching
        NoResourceAvailable subclass is raised.
        """
        if not options.any():
            raise ValidationError("At least one of assignRoom, assignFaculty, assignInvigilators is required")
        with self.state.lock:
            slot = self.store.slot(slot_id)
            plan = self._plan(slot, options)
            self._commit(slot, plan, options)
            logger.info("Allocated slot %s: room=%s faculty=%s head=%s invigilators=%s", slot.id,
                        slot.room_id, slot.faculty_id, slot.exam_head_id, slot.invigilator_ids)
            return deepcopy(slot)

    def allocate_all(self, schedule_id: int, options: AllocationOptions) -> AllocationReport:
        """Allocates every slot of a schedule in chronological order, one slot at a time.

        Each slot commits on its own, so a failure never undoes earlier slots.
        """
        if not options.any():
            raise ValidationError("At least one of assignRoom, assignFaculty, assignInvigilators is required")
        order = [slot.id for slot in chronological(self.store.list_slots(schedule_id))]
        report = AllocationReport(schedule_id)
        for slot_id in order:
            try:
                slot = self.allocate_slot(slot_id, options)
            except (NoRoomAvailable, NoFacultyAvailable, NoInvigilatorsAvailable) as e:
                report.outcomes.append(SlotOutcome(slot_id, False, reason=e.reason, message=e.message))
            except NotFound as e:
                # Deleted while the batch was running.
                report.outcomes.append(SlotOutcome(slot_id, False, reason=e.code, message=e.message))
            else:
                report.outcomes.append(SlotOutcome(slot_id, True, slot=slot))
        logger.info("Schedule %s: %s", schedule_id, report.message)
        return report

    # --- Planning ---
    def _plan(self, slot: ExamSlot, options: AllocationOptions) -> _Plan:
        ignore: Set[Tuple[int, str]] = set()
        if options.assign_room:
            ignore.add((slot.id, ROLE_ROOM))
        if options.assign_faculty:
            ignore.update({(slot.id, ROLE_FACULTY), (slot.id, ROLE_EXAM_HEAD)})
        if options.assign_invigilators:
            ignore.add((slot.id, ROLE_INVIGILATOR))
        discount = self._own_load(slot, options)

        plan = _Plan(slot.room_id, slot.faculty_id, slot.exam_head_id, list(slot.invigilator_ids))
        if options.assign_room:
            rooms = self.finder.free_rooms(slot.window, slot.student_count, ignore)
            if not rooms:
                raise NoRoomAvailable(
                    f"No room with capacity {slot.student_count} is free on {slot.window.date}"
                    f" {slot.window.start}-{slot.window.end}"
                )
            plan.room_id = rooms[0].id

        if options.assign_faculty:
            # Exam heads are the scarcer pool, so they are chosen first.
            head = self._pick(slot, EXAM_HEAD, ignore, discount, exclude=set())
            if head is None:
                raise NoFacultyAvailable(f"No exam head is free for slot {slot.id}")
            main = self._pick(slot, ANY, ignore, discount, exclude={head.id})
            if main is None:
                raise NoFacultyAvailable(f"No faculty member is free for slot {slot.id}")
            plan.faculty_id, plan.exam_head_id = main.id, head.id

        if options.assign_invigilators:
            needed = self.policy.invigilators_for(slot.student_count)
            exclude = {fid for fid in (plan.faculty_id, plan.exam_head_id) if fid is not None}
            chosen = self._ranked(slot, INVIGILATOR, ignore, discount, exclude)[:needed]
            if len(chosen) < needed:
                raise NoInvigilatorsAvailable(
                    f"Slot {slot.id} needs {needed} invigilators, only {len(chosen)} are free"
                )
            plan.invigilator_ids = [member.id for member in chosen]
        return plan

    def _own_load(self, slot: ExamSlot, options: AllocationOptions) -> Dict[int, int]:
        """Workload units this slot contributes through the facets being recomputed."""
        discount: Dict[int, int] = {}
        for faculty_id, role in slot.faculty_roles():
            recomputed = (options.assign_invigilators if role == ROLE_INVIGILATOR
                          else options.assign_faculty)
            if recomputed:
                discount[faculty_id] = discount.get(faculty_id, 0) + 1
        return discount

    def _ranked(self, slot: ExamSlot, role: str, ignore: Set[Tuple[int, str]],
                discount: Dict[int, int], exclude: Set[int]) -> List[Faculty]:
        def load(member: Faculty) -> int:
            return member.current_workload - discount.get(member.id, 0)

        candidates = [
            member for member in self.finder.free_faculty(slot.window, role, ignore)
            if member.id not in exclude and load(member) < member.workload_capacity
        ]
        return sorted(candidates, key=lambda m: (load(m) / m.workload_capacity, m.id))

    def _pick(self, slot: ExamSlot, role: str, ignore: Set[Tuple[int, str]],
              discount: Dict[int, int], exclude: Set[int]) -> Optional[Faculty]:
        ranked = self._ranked(slot, role, ignore, discount, exclude)
        return ranked[0] if ranked else None

    # --- Commit ---
    def _commit(self, slot: ExamSlot, plan: _Plan, options: AllocationOptions) -> None:
        # Release every recomputed facet before booking, so a faculty member
        # moving between roles on this slot never holds two bookings at once.
        if options.assign_room:
            self.ledger.release_room(slot)
        if options.assign_faculty:
            self.ledger.release_faculty(slot, ROLE_FACULTY)
            self.ledger.release_faculty(slot, ROLE_EXAM_HEAD)
        if options.assign_invigilators:
            self.ledger.release_invigilators(slot)

        if options.assign_room:
            self.ledger.book_room(slot, plan.room_id)
        if options.assign_faculty:
            self.ledger.book_faculty(slot, ROLE_FACULTY, plan.faculty_id)
            self.ledger.book_faculty(slot, ROLE_EXAM_HEAD, plan.exam_head_id)
        if options.assign_invigilators:
            for faculty_id in plan.invigilator_ids:
                self.ledger.book_faculty(slot, ROLE_INVIGILATOR, faculty_id)
