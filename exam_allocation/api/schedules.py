from datetime import date, time
from typing import List

from fastapi import APIRouter, Depends, Query

from exam_allocation.allocation.engine import AllocationOptions
from exam_allocation.api.deps import RequestContext, get_service, require_permitted
from exam_allocation.api.presenters import allocation_response, faculty_out, faculty_ref, schedule_out, slot_out
from exam_allocation.models import Window
from exam_allocation.schemas import (
    AllocationResponse,
    AvailabilityIn,
    AvailabilityOut,
    DispatchResponse,
    ExamSlotOut,
    FacultyAssignRequest,
    FacultyOut,
    ResourceAllocationRequest,
    RoomAssignRequest,
    ScheduleGenerateRequest,
    ScheduleOut,
    SlotCreate,
)
from exam_allocation.services.exam_service import ExamSchedulingService
from exam_allocation.services.finder import ANY, EXAM_HEAD, INVIGILATOR

router = APIRouter(prefix="/schedule", tags=["schedule"])

_ROLE_PARAM = {"any": ANY, "examHead": EXAM_HEAD, "invigilator": INVIGILATOR}


def _options(request: ResourceAllocationRequest) -> AllocationOptions:
    return AllocationOptions(
        assign_room=request.assign_room,
        assign_faculty=request.assign_faculty,
        assign_invigilators=request.assign_invigilators,
    )


def _dispatch_response(outcome) -> DispatchResponse:
    return DispatchResponse(schedule_id=outcome.schedule_id, action=outcome.action,
                            success=outcome.success, message=outcome.message)


# --- Schedules ---
@router.get("", response_model=List[ScheduleOut])
def list_schedules(service: ExamSchedulingService = Depends(get_service)):
    return [schedule_out(service, s) for s in service.store.list_schedules()]


@router.post("/generate", response_model=ScheduleOut, status_code=201)
def generate_schedule(
    payload: ScheduleGenerateRequest,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    schedule_name: str = Query(..., alias="scheduleName"),
    service: ExamSchedulingService = Depends(get_service),
    ctx: RequestContext = Depends(require_permitted),
):
    schedule = service.orchestrator.generate_schedule(
        schedule_name, start_date, end_date, payload.program_ids, payload.include_weekends,
    )
    return schedule_out(service, schedule)


# --- Faculty availability ---
@router.get("/faculty/available", response_model=List[FacultyOut])
def find_available_faculty(
    exam_date: date = Query(..., alias="date"),
    start_time: time = Query(..., alias="startTime"),
    end_time: time = Query(..., alias="endTime"),
    role: str = Query("any"),
    service: ExamSchedulingService = Depends(get_service),
):
    window = Window.checked(exam_date, start_time, end_time)
    members = service.finder.find_available_faculty(window, _ROLE_PARAM.get(role, role))
    return [faculty_out(member) for member in members]


@router.post("/faculty/{faculty_id}/availability", response_model=AvailabilityOut, status_code=201)
def add_faculty_availability(faculty_id: int, payload: AvailabilityIn,
                             service: ExamSchedulingService = Depends(get_service),
                             ctx: RequestContext = Depends(require_permitted)):
    window = Window.checked(payload.date, payload.start_time, payload.end_time)
    service.registry.add_faculty_availability(faculty_id, window)
    member = service.registry.get_faculty(faculty_id)
    return AvailabilityOut(faculty=faculty_ref(member), date=window.date,
                           start_time=window.start, end_time=window.end)


# --- Slots ---
@router.delete("/slots/{slot_id}", status_code=204)
def delete_slot(slot_id: int, service: ExamSchedulingService = Depends(get_service),
                ctx: RequestContext = Depends(require_permitted)):
    service.store.delete_slot(slot_id)


@router.get("/slots/{slot_id}", response_model=ExamSlotOut)
def get_slot(slot_id: int, service: ExamSchedulingService = Depends(get_service)):
    return slot_out(service, service.store.get_slot(slot_id))


@router.put("/slots/{slot_id}/room", response_model=ExamSlotOut)
def assign_room(slot_id: int, payload: RoomAssignRequest, service: ExamSchedulingService = Depends(get_service),
                ctx: RequestContext = Depends(require_permitted)):
    return slot_out(service, service.assignments.assign_room(slot_id, payload.room_id))


@router.delete("/slots/{slot_id}/room", response_model=ExamSlotOut)
def unassign_room(slot_id: int, service: ExamSchedulingService = Depends(get_service),
                  ctx: RequestContext = Depends(require_permitted)):
    return slot_out(service, service.assignments.unassign_room(slot_id))


@router.put("/slots/{slot_id}/faculty", response_model=ExamSlotOut)
def assign_faculty(slot_id: int, payload: FacultyAssignRequest,
                   service: ExamSchedulingService = Depends(get_service),
                   ctx: RequestContext = Depends(require_permitted)):
    return slot_out(service, service.assignments.assign_faculty(slot_id, payload.faculty_id))


@router.delete("/slots/{slot_id}/faculty", response_model=ExamSlotOut)
def unassign_faculty(slot_id: int, service: ExamSchedulingService = Depends(get_service),
                     ctx: RequestContext = Depends(require_permitted)):
    return slot_out(service, service.assignments.unassign_faculty(slot_id))


@router.put("/slots/{slot_id}/examHead", response_model=ExamSlotOut)
def assign_exam_head(slot_id: int, payload: FacultyAssignRequest,
                     service: ExamSchedulingService = Depends(get_service),
                     ctx: RequestContext = Depends(require_permitted)):
    return slot_out(service, service.assignments.assign_exam_head(slot_id, payload.faculty_id))


@router.delete("/slots/{slot_id}/examHead", response_model=ExamSlotOut)
def unassign_exam_head(slot_id: int, service: ExamSchedulingService = Depends(get_service),
                       ctx: RequestContext = Depends(require_permitted)):
    return slot_out(service, service.assignments.unassign_exam_head(slot_id))


@router.post("/slots/{slot_id}/invigilators", response_model=ExamSlotOut)
def add_invigilator(slot_id: int, payload: FacultyAssignRequest,
                    service: ExamSchedulingService = Depends(get_service),
                    ctx: RequestContext = Depends(require_permitted)):
    return slot_out(service, service.assignments.add_invigilator(slot_id, payload.faculty_id))


@router.delete("/slots/{slot_id}/invigilators/{faculty_id}", response_model=ExamSlotOut)
def remove_invigilator(slot_id: int, faculty_id: int, service: ExamSchedulingService = Depends(get_service),
                       ctx: RequestContext = Depends(require_permitted)):
    return slot_out(service, service.assignments.remove_invigilator(slot_id, faculty_id))


@router.put("/slots/{slot_id}/allocate", response_model=ExamSlotOut)
def allocate_slot(slot_id: int, payload: ResourceAllocationRequest,
                  service: ExamSchedulingService = Depends(get_service),
                  ctx: RequestContext = Depends(require_permitted)):
    return slot_out(service, service.engine.allocate_slot(slot_id, _options(payload)))


# --- Per-schedule routes ---
@router.get("/{schedule_id}", response_model=ScheduleOut)
def get_schedule(schedule_id: int, service: ExamSchedulingService = Depends(get_service)):
    return schedule_out(service, service.store.get_schedule(schedule_id))


@router.delete("/{schedule_id}", status_code=204)
def delete_schedule(schedule_id: int, service: ExamSchedulingService = Depends(get_service),
                    ctx: RequestContext = Depends(require_permitted)):
    service.store.delete_schedule(schedule_id)


@router.get("/{schedule_id}/export", response_model=DispatchResponse)
def export_schedule(schedule_id: int, service: ExamSchedulingService = Depends(get_service)):
    return _dispatch_response(service.orchestrator.export_schedule(schedule_id))


@router.post("/{schedule_id}/email", response_model=DispatchResponse)
def email_schedule(schedule_id: int, service: ExamSchedulingService = Depends(get_service),
                   ctx: RequestContext = Depends(require_permitted)):
    return _dispatch_response(service.orchestrator.email_schedule(schedule_id))


@router.get("/{schedule_id}/slots", response_model=List[ExamSlotOut])
def list_slots(schedule_id: int, service: ExamSchedulingService = Depends(get_service)):
    return [slot_out(service, slot) for slot in service.store.list_slots(schedule_id)]


@router.post("/{schedule_id}/slots", response_model=ExamSlotOut, status_code=201)
def add_slot(schedule_id: int, payload: SlotCreate, service: ExamSchedulingService = Depends(get_service),
             ctx: RequestContext = Depends(require_permitted)):
    window = Window.checked(payload.exam_date, payload.start_time, payload.end_time)
    slot = service.store.add_slot(schedule_id, payload.subject_id, window, payload.student_count)
    return slot_out(service, slot)


@router.post("/{schedule_id}/allocate-all", response_model=AllocationResponse)
def allocate_all(schedule_id: int, payload: ResourceAllocationRequest,
                 service: ExamSchedulingService = Depends(get_service),
                 ctx: RequestContext = Depends(require_permitted)):
    report = service.engine.allocate_all(schedule_id, _options(payload))
    return allocation_response(service, report)
