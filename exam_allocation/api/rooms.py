from datetime import date, time
from typing import List

from fastapi import APIRouter, Depends, Query

from exam_allocation.api.deps import RequestContext, get_service, require_permitted
from exam_allocation.api.presenters import room_out
from exam_allocation.models import Window
from exam_allocation.schemas import (
    AvailabilityToggle,
    AvailableRoomsStats,
    RoomIn,
    RoomOut,
    TotalCapacityStats,
    TotalRoomsStats,
)
from exam_allocation.services.exam_service import ExamSchedulingService

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("", response_model=List[RoomOut])
def list_rooms(service: ExamSchedulingService = Depends(get_service)):
    return [room_out(service, room) for room in service.registry.list_rooms()]


@router.get("/stats/total-rooms", response_model=TotalRoomsStats)
def total_rooms(service: ExamSchedulingService = Depends(get_service)):
    return TotalRoomsStats(total_rooms=service.registry.room_stats()["total_rooms"])


@router.get("/stats/total-capacity", response_model=TotalCapacityStats)
def total_capacity(service: ExamSchedulingService = Depends(get_service)):
    return TotalCapacityStats(total_capacity=service.registry.room_stats()["total_capacity"])


@router.get("/stats/available-rooms", response_model=AvailableRoomsStats)
def available_rooms_count(service: ExamSchedulingService = Depends(get_service)):
    return AvailableRoomsStats(available_rooms=service.registry.room_stats()["available_rooms"])


@router.get("/available", response_model=List[RoomOut])
def find_available_rooms(
    exam_date: date = Query(..., alias="date"),
    start_time: time = Query(..., alias="startTime"),
    end_time: time = Query(..., alias="endTime"),
    min_capacity: int = Query(0, alias="minCapacity"),
    service: ExamSchedulingService = Depends(get_service),
):
    window = Window.checked(exam_date, start_time, end_time)
    return [room_out(service, room) for room in service.finder.find_available_rooms(window, min_capacity)]


@router.get("/{room_id}", response_model=RoomOut)
def get_room(room_id: int, service: ExamSchedulingService = Depends(get_service)):
    return room_out(service, service.registry.get_room(room_id))


@router.post("", response_model=RoomOut, status_code=201)
def create_room(payload: RoomIn, service: ExamSchedulingService = Depends(get_service),
                ctx: RequestContext = Depends(require_permitted)):
    room = service.registry.create_room(
        payload.room_number, payload.seating_capacity, payload.building, str(payload.floor),
        payload.room_type, payload.is_available,
    )
    return room_out(service, room)


@router.put("/{room_id}", response_model=RoomOut)
def update_room(room_id: int, payload: RoomIn, service: ExamSchedulingService = Depends(get_service),
                ctx: RequestContext = Depends(require_permitted)):
    room = service.registry.update_room(
        room_id,
        room_number=payload.room_number,
        building=payload.building,
        floor=str(payload.floor),
        capacity=payload.seating_capacity,
        room_type=payload.room_type,
        is_available=payload.is_available,
    )
    return room_out(service, room)


@router.delete("/{room_id}", status_code=204)
def delete_room(room_id: int, service: ExamSchedulingService = Depends(get_service),
                ctx: RequestContext = Depends(require_permitted)):
    service.registry.delete_room(room_id)


@router.put("/{room_id}/availability", response_model=RoomOut)
def set_room_availability(room_id: int, payload: AvailabilityToggle,
                          service: ExamSchedulingService = Depends(get_service),
                          ctx: RequestContext = Depends(require_permitted)):
    return room_out(service, service.registry.set_room_availability(room_id, payload.is_available))
