from __future__ import annotations
import logging
from datetime import date, datetime, time
from typing import Any, Callable, Dict, Optional

from exam_allocation import config
from exam_allocation.allocation.engine import AllocationEngine, AllocationPolicy
from exam_allocation.models import Window
from exam_allocation.services.assignment import AssignmentService
from exam_allocation.services.booking import BookingLedger
from exam_allocation.services.dispatch import DispatchGateway
from exam_allocation.services.exam_catalog import ExamCatalog
from exam_allocation.services.finder import AvailabilityFinder
from exam_allocation.services.orchestrator import ScheduleOrchestrator
from exam_allocation.services.registry import ResourceRegistry
from exam_allocation.services.slot_store import SlotStore
from exam_allocation.services.state import State
from exam_allocation.services.strategies import SlotStrategy

logger = logging.getLogger(__name__)


class ExamSchedulingService:
    """Wires the registry, slot store, allocation engine, orchestrator and exam catalogue over one shared state."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now, policy: Optional[AllocationPolicy] = None,
                 strategy: Optional[SlotStrategy] = None, gateway: Optional[DispatchGateway] = None) -> None:
        self.state = State()
        self.clock = clock
        self.ledger = BookingLedger(self.state)
        self.registry = ResourceRegistry(self.state, clock)
        self.store = SlotStore(self.state, self.ledger)
        self.finder = AvailabilityFinder(self.state)
        self.engine = AllocationEngine(self.state, self.store, self.ledger, self.finder, policy)
        self.assignments = AssignmentService(self.state, self.store, self.ledger)
        self.orchestrator = ScheduleOrchestrator(self.state, self.store, clock, strategy, gateway)
        self.exams = ExamCatalog(self.state)

    def load_seed(self, data: Dict[str, Any]) -> None:
        """Loads programs, rooms, faculty, subjects and students from a seed document.

        Keys follow the wire format (camelCase); ids in the document are kept.
        """
        for p in data.get("programs", []):
            self.registry.create_program(p["name"], p.get("department", ""), p.get("code", ""), program_id=p.get("id"))
        for r in data.get("rooms", []):
            self.registry.create_room(
                r["roomNumber"], r.get("seatingCapacity", 0), r.get("building", ""), str(r.get("floor", "")),
                r.get("roomType", "CLASSROOM"), r.get("isAvailable", True), room_id=r.get("id"),
            )
        for f in data.get("faculty", []):
            member = self.registry.create_faculty(
                f["name"], f.get("department", ""),
                f.get("workloadCapacity", config.DEFAULT_WORKLOAD_CAPACITY), f.get("currentWorkload", 0),
                f.get("isExamHead", False), f.get("isInvigilator", True), faculty_id=f.get("id"),
            )
            for w in f.get("availability", []):
                window = Window.checked(date.fromisoformat(w["date"]), time.fromisoformat(w["startTime"]),
                                        time.fromisoformat(w["endTime"]))
                self.registry.add_faculty_availability(member.id, window)
        for s in data.get("subjects", []):
            self.registry.create_subject(
                s["name"], s["code"], s.get("programId"), s.get("regularStudents", 0),
                s.get("backlogStudents", 0), subject_id=s.get("id"),
            )
        for st in data.get("students", []):
            enrolled = st.get("enrollmentDate")
            self.registry.create_student(
                st["studentId"], st["name"], st["email"], student_pk=st.get("id"),
                program_id=st.get("programId"), semester=st.get("semester", 1), status=st.get("status", "ACTIVE"),
                phone=st.get("phone"), address=st.get("address"),
                enrollment_date=date.fromisoformat(enrolled) if enrolled else None,
            )
        logger.info("Seeded %d rooms, %d faculty, %d subjects", len(self.state.rooms),
                    len(self.state.faculty), len(self.state.subjects))
