import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from conftest import window

from exam_allocation.allocation.engine import AllocationOptions
from exam_allocation.errors import Conflict, NoRoomAvailable, NotFound, ValidationError
from exam_allocation.services.availability import FACULTY, ROOM


@pytest.fixture
def two_slots(service, finals):
    schedule, subject = finals
    first = service.store.add_slot(schedule.id, subject.id, window(start="09:00", end="11:00"))
    overlapping = service.store.add_slot(schedule.id, subject.id, window(start="10:00", end="12:00"))
    return first, overlapping


def test_same_room_for_overlapping_slots_is_conflict(service, two_slots):
    first, overlapping = two_slots
    room = service.registry.create_room("R-1", 80)
    service.assignments.assign_room(first.id, room.id)

    with pytest.raises(Conflict):
        service.assignments.assign_room(overlapping.id, room.id)
    assert service.store.get_slot(overlapping.id).room_id is None


def test_room_checks_flag_and_capacity(service, two_slots):
    first, _ = two_slots
    closed = service.registry.create_room("R-2", 80, is_available=False)
    tiny = service.registry.create_room("R-3", 10)

    with pytest.raises(Conflict):
        service.assignments.assign_room(first.id, closed.id)
    with pytest.raises(ValidationError):
        service.assignments.assign_room(first.id, tiny.id)
    with pytest.raises(NotFound):
        service.assignments.assign_room(first.id, 999)


def test_faculty_double_booking_is_conflict(service, two_slots):
    first, overlapping = two_slots
    member = service.registry.create_faculty("Dr. Menon", "CSE", 5, can_be_exam_head=True)
    service.assignments.assign_faculty(first.id, member.id)

    with pytest.raises(Conflict):
        service.assignments.assign_exam_head(overlapping.id, member.id)
    with pytest.raises(Conflict):
        service.assignments.add_invigilator(first.id, member.id)
    assert service.registry.get_faculty(member.id).current_workload == 1


def test_replacing_main_faculty_moves_workload(service, two_slots):
    first, _ = two_slots
    a = service.registry.create_faculty("A", "CSE", 5)
    b = service.registry.create_faculty("B", "CSE", 5)

    service.assignments.assign_faculty(first.id, a.id)
    slot = service.assignments.assign_faculty(first.id, b.id)

    assert slot.faculty_id == b.id
    assert service.registry.get_faculty(a.id).current_workload == 0
    assert service.registry.get_faculty(b.id).current_workload == 1
    # Reassigning the holder is a no-op
    service.assignments.assign_faculty(first.id, b.id)
    assert service.registry.get_faculty(b.id).current_workload == 1


def test_assign_remove_reassign_counts_once(service, two_slots):
    first, _ = two_slots
    member = service.registry.create_faculty("Dr. Paul", "CSE", 5, current_workload=2)

    service.assignments.assign_faculty(first.id, member.id)
    service.assignments.unassign_faculty(first.id)
    service.assignments.assign_faculty(first.id, member.id)

    assert service.registry.get_faculty(member.id).current_workload == 3


def test_capabilities_are_checked(service, two_slots):
    first, _ = two_slots
    plain = service.registry.create_faculty("Plain", "CSE", 5, can_invigilate=False)

    with pytest.raises(ValidationError):
        service.assignments.assign_exam_head(first.id, plain.id)
    with pytest.raises(ValidationError):
        service.assignments.add_invigilator(first.id, plain.id)


def test_manual_assignment_may_exceed_capacity(service, two_slots):
    first, _ = two_slots
    member = service.registry.create_faculty("Overloaded", "CSE", 1, current_workload=1)

    slot = service.assignments.add_invigilator(first.id, member.id)
    assert slot.invigilator_ids == [member.id]
    assert service.registry.get_faculty(member.id).current_workload == 2


def test_remove_invigilator(service, two_slots):
    first, overlapping = two_slots
    a = service.registry.create_faculty("A", "CSE", 5)
    b = service.registry.create_faculty("B", "CSE", 5)
    service.assignments.add_invigilator(first.id, a.id)
    service.assignments.add_invigilator(first.id, b.id)

    slot = service.assignments.remove_invigilator(first.id, a.id)

    assert slot.invigilator_ids == [b.id]
    assert service.registry.get_faculty(a.id).current_workload == 0
    # Freed for the overlapping slot
    assert service.assignments.add_invigilator(overlapping.id, a.id).invigilator_ids == [a.id]
    with pytest.raises(NotFound):
        service.assignments.remove_invigilator(first.id, a.id)


def test_unknown_slot(service):
    with pytest.raises(NotFound):
        service.assignments.assign_faculty(42, 1)


def test_deleting_slot_releases_bookings(service, two_slots):
    first, overlapping = two_slots
    room = service.registry.create_room("R-9", 80)
    member = service.registry.create_faculty("Dr. Das", "CSE", 5)
    service.assignments.assign_room(first.id, room.id)
    service.assignments.assign_faculty(first.id, member.id)

    service.store.delete_slot(first.id)

    assert service.registry.get_faculty(member.id).current_workload == 0
    service.assignments.assign_room(overlapping.id, room.id)
    service.assignments.assign_faculty(overlapping.id, member.id)


def assert_no_double_booking(service):
    index = service.state.index
    for kind, ids in ((ROOM, service.state.rooms), (FACULTY, service.state.faculty)):
        for resource_id in ids:
            latest_end = None
            for start, end, _, _ in index.bookings(kind, resource_id):
                assert latest_end is None or latest_end <= start, f"{kind} {resource_id} double booked"
                latest_end = end if latest_end is None else max(latest_end, end)


def run_together(calls):
    """Runs the callables on separate threads released at the same moment."""
    gate = threading.Barrier(len(calls))

    def attempt(call):
        gate.wait()
        try:
            call()
            return "ok"
        except (Conflict, NoRoomAvailable) as exc:
            return exc.code

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(attempt, calls))


def test_concurrent_room_assignments_admit_one(service, two_slots):
    first, overlapping = two_slots
    room = service.registry.create_room("R-10", 80)

    results = run_together([
        lambda: service.assignments.assign_room(first.id, room.id),
        lambda: service.assignments.assign_room(overlapping.id, room.id),
    ])

    assert sorted(results) == ["Conflict", "ok"]
    assert len(service.state.index.bookings(ROOM, room.id)) == 1
    assert [s.room_id for s in service.store.list_slots()].count(room.id) == 1


def test_concurrent_slot_allocation_never_shares_a_room(service, finals):
    schedule, subject = finals
    for number in range(3):
        service.registry.create_room(f"Q-{number}", 80)
    slots = [service.store.add_slot(schedule.id, subject.id, window()) for _ in range(8)]
    rooms_only = AllocationOptions(assign_room=True)

    results = run_together([lambda sid=slot.id: service.engine.allocate_slot(sid, rooms_only) for slot in slots])

    assert results.count("ok") == 3
    assert results.count("NoRoomAvailable") == 5
    assigned = [s.room_id for s in service.store.list_slots() if s.room_id is not None]
    assert len(assigned) == len(set(assigned)) == 3
    assert_no_double_booking(service)


def test_concurrent_batches_on_one_schedule(service, finals):
    schedule, subject = finals
    service.registry.create_room("P-1", 80)
    service.registry.create_room("P-2", 80)
    for i in range(10):
        service.registry.create_faculty(f"Faculty {i}", "CSE", 10, can_be_exam_head=i < 3)
    for _ in range(3):
        service.store.add_slot(schedule.id, subject.id, window())
    everything = AllocationOptions(assign_room=True, assign_faculty=True, assign_invigilators=True)

    reports = []
    run_together([lambda: reports.append(service.engine.allocate_all(schedule.id, everything))] * 2)

    assert [r.successful_allocations for r in reports] == [2, 2]
    slots = service.store.list_slots(schedule.id)
    assert sum(1 for s in slots if s.room_id is not None) == 2
    assert_no_double_booking(service)
    booked_roles = sum(len(s.faculty_roles()) for s in slots)
    assert sum(m.current_workload for m in service.registry.list_faculty()) == booked_roles
