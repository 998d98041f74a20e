from datetime import date, datetime, time

import pytest
from fastapi.testclient import TestClient

from exam_allocation.main import app
from exam_allocation.models import Window
from exam_allocation.services.exam_service import ExamSchedulingService

NOW = datetime(2025, 5, 20, 8, 0)


def fixed_clock():
    return NOW


def window(day: int = 23, start: str = "09:00", end: str = "11:00") -> Window:
    return Window(date(2025, 5, day), time.fromisoformat(start), time.fromisoformat(end))


@pytest.fixture
def service():
    return ExamSchedulingService(clock=fixed_clock)


@pytest.fixture
def finals(service):
    """Schedule "Finals" 2025-05-22..2025-05-29 with one program and subject CS305."""
    program = service.registry.create_program("Computer Science", "Engineering", "CSE")
    subject = service.registry.create_subject("Operating Systems", "CS305", program.id, 50, 10)
    schedule = service.store.create_schedule("Finals", date(2025, 5, 22), date(2025, 5, 29), [program.id])
    return schedule, subject


@pytest.fixture
def client(service):
    app.state.service = service
    return TestClient(app)
