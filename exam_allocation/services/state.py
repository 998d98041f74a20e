from __future__ import annotations
from dataclasses import dataclass, field
from itertools import count
from threading import RLock
from typing import Dict, Iterator

from exam_allocation.models import ExamRecord, ExamSlot, Faculty, Program, Room, Schedule, Student, Subject
from exam_allocation.services.availability import AvailabilityIndex


@dataclass
class State:
    """Everything the services share. Hold ``lock`` for any read-then-write."""

    programs: Dict[int, Program] = field(default_factory=dict)
    rooms: Dict[int, Room] = field(default_factory=dict)
    faculty: Dict[int, Faculty] = field(default_factory=dict)
    subjects: Dict[int, Subject] = field(default_factory=dict)
    students: Dict[int, Student] = field(default_factory=dict)
    schedules: Dict[int, Schedule] = field(default_factory=dict)
    slots: Dict[int, ExamSlot] = field(default_factory=dict)
    exams: Dict[int, ExamRecord] = field(default_factory=dict)
    index: AvailabilityIndex = field(default_factory=AvailabilityIndex)
    lock: RLock = field(default_factory=RLock)
    _ids: Dict[str, Iterator[int]] = field(default_factory=dict)

    def next_id(self, kind: str) -> int:
        return next(self._ids.setdefault(kind, count(1)))

    def reserve_id(self, kind: str, used: int) -> None:
        """Makes sure ids handed out later for ``kind`` are above ``used``."""
        current = self._ids.get(kind)
        if current is None:
            self._ids[kind] = count(used + 1)
            return
        nxt = next(current)
        self._ids[kind] = count(max(nxt, used + 1))
