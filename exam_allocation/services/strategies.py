from __future__ import annotations
from datetime import date, time, timedelta
from typing import Iterable, List, NamedTuple, Optional, Protocol, Sequence, Tuple

from exam_allocation import config
from exam_allocation.models import Subject


class SlotPlan(NamedTuple):
    subject_id: int
    date: date
    start: time
    end: time
    student_count: int


class SlotStrategy(Protocol):
    def __call__(self, start_date: date, end_date: date, subjects: Sequence[Subject],
                 include_weekends: bool) -> Iterable[SlotPlan]:
        ...


def exam_days(start_date: date, end_date: date, include_weekends: bool) -> List[date]:
    days = []
    day = start_date
    while day <= end_date:
        if include_weekends or day.weekday() < 5:
            days.append(day)
        day += timedelta(days=1)
    return days


class SessionRoundRobin:
    """One sitting per subject, filling sessions day by day.

    Subjects are ordered by program then code, so subjects of one program land
    in consecutive sessions rather than sharing one. When subjects outnumber
    the available sessions the walk starts again from the first session.
    """

    def __init__(self, sessions: Optional[Sequence[Tuple[time, time]]] = None) -> None:
        self.sessions = list(sessions or config.EXAM_SESSIONS)

    def __call__(self, start_date: date, end_date: date, subjects: Sequence[Subject],
                 include_weekends: bool) -> List[SlotPlan]:
        openings = [(day, start, end)
                    for day in exam_days(start_date, end_date, include_weekends)
                    for start, end in self.sessions]
        if not openings:
            return []
        ordered = sorted(subjects, key=lambda s: (s.program_id or 0, s.code, s.id))
        plans = []
        for i, subject in enumerate(ordered):
            day, start, end = openings[i % len(openings)]
            plans.append(SlotPlan(subject.id, day, start, end, subject.total_students))
        return plans
