from __future__ import annotations
from bisect import bisect_left, insort
from datetime import datetime
from typing import Collection, Dict, List, Tuple

from exam_allocation.models import Window

ROOM = "room"
FACULTY = "faculty"

# (start, end, slot_id, role)
Booking = Tuple[datetime, datetime, int, str]


class AvailabilityIndex:
    """Per-resource sorted booking lists.

    The booking rules never let two bookings of one resource overlap, so within
    a list both starts and ends are increasing. That makes an overlap query a
    single bisect plus a look at the closest preceding booking.
    """

    def __init__(self) -> None:
        self._bookings: Dict[Tuple[str, int], List[Booking]] = {}

    def reserve(self, kind: str, resource_id: int, window: Window, slot_id: int, role: str) -> None:
        insort(self._bookings.setdefault((kind, resource_id), []), (window.start_at, window.end_at, slot_id, role))

    def release(self, kind: str, resource_id: int, slot_id: int, role: str) -> None:
        entries = self._bookings.get((kind, resource_id))
        if not entries:
            return
        entries[:] = [e for e in entries if not (e[2] == slot_id and e[3] == role)]
        if not entries:
            del self._bookings[(kind, resource_id)]

    def is_free(
        self,
        kind: str,
        resource_id: int,
        window: Window,
        ignore: Collection[Tuple[int, str]] = (),
    ) -> bool:
        """True when no booking other than the ignored (slot_id, role) pairs overlaps window."""
        entries = self._bookings.get((kind, resource_id))
        if not entries:
            return True
        # Everything from idx onwards starts at or after the window end.
        idx = bisect_left(entries, window.end_at, key=lambda e: e[0])
        i = idx - 1
        while i >= 0:
            _, end, slot_id, role = entries[i]
            if (slot_id, role) not in ignore:
                return end <= window.start_at
            i -= 1
        return True

    def bookings(self, kind: str, resource_id: int) -> List[Booking]:
        return list(self._bookings.get((kind, resource_id), []))

    def has_bookings_ending_after(self, kind: str, resource_id: int, moment: datetime) -> bool:
        entries = self._bookings.get((kind, resource_id), [])
        return bool(entries) and entries[-1][1] >= moment

    def clear(self) -> None:
        self._bookings.clear()
