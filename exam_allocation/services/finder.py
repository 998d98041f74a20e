from __future__ import annotations
from copy import deepcopy
from typing import Collection, List, Tuple

from exam_allocation.errors import ValidationError
from exam_allocation.models import Faculty, Room, Window
from exam_allocation.services.availability import FACULTY, ROOM
from exam_allocation.services.state import State

ANY = "any"
EXAM_HEAD = "exam_head"
INVIGILATOR = "invigilator"
ROLES = (ANY, EXAM_HEAD, INVIGILATOR)


def has_role(member: Faculty, role: str) -> bool:
    if role == EXAM_HEAD:
        return member.can_be_exam_head
    if role == INVIGILATOR:
        return member.can_invigilate
    return True


class AvailabilityFinder:
    """Answers "which rooms / faculty are free for this window"."""

    def __init__(self, state: State) -> None:
        self.state = state

    def find_available_rooms(self, window: Window, min_capacity: int = 0) -> List[Room]:
        if min_capacity < 0:
            raise ValidationError("minCapacity must not be negative")
        with self.state.lock:
            return deepcopy(self.free_rooms(window, min_capacity))

    def find_available_faculty(self, window: Window, role: str = ANY) -> List[Faculty]:
        if role not in ROLES:
            raise ValidationError(f"Unknown faculty role '{role}'")
        with self.state.lock:
            return deepcopy(self.free_faculty(window, role))

    # Callers must hold the state lock for the helpers below.
    def free_rooms(self, window: Window, min_capacity: int,
                   ignore: Collection[Tuple[int, str]] = ()) -> List[Room]:
        """Free rooms in best-fit order: smallest capacity first, then id."""
        rooms = [
            room for room in self.state.rooms.values()
            if room.is_available
            and room.capacity >= min_capacity
            and self.state.index.is_free(ROOM, room.id, window, ignore)
        ]
        return sorted(rooms, key=lambda r: (r.capacity, r.id))

    def free_faculty(self, window: Window, role: str,
                     ignore: Collection[Tuple[int, str]] = ()) -> List[Faculty]:
        """Free faculty in load-balanced order: lowest workload ratio first, then id."""
        members = [
            member for member in self.state.faculty.values()
            if has_role(member, role)
            and member.declares(window)
            and self.state.index.is_free(FACULTY, member.id, window, ignore)
        ]
        return sorted(members, key=lambda f: (f.load_ratio, f.id))
