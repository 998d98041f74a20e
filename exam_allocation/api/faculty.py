from typing import List

from fastapi import APIRouter, Depends

from exam_allocation.api.deps import RequestContext, get_service, require_permitted
from exam_allocation.api.presenters import faculty_out
from exam_allocation.schemas import FacultyIn, FacultyOut
from exam_allocation.services.exam_service import ExamSchedulingService

router = APIRouter(prefix="/faculty", tags=["faculty"])


@router.get("", response_model=List[FacultyOut])
def list_faculty(service: ExamSchedulingService = Depends(get_service)):
    return [faculty_out(member) for member in service.registry.list_faculty()]


@router.get("/{faculty_id}", response_model=FacultyOut)
def get_faculty(faculty_id: int, service: ExamSchedulingService = Depends(get_service)):
    return faculty_out(service.registry.get_faculty(faculty_id))


@router.post("", response_model=FacultyOut, status_code=201)
def create_faculty(payload: FacultyIn, service: ExamSchedulingService = Depends(get_service),
                   ctx: RequestContext = Depends(require_permitted)):
    member = service.registry.create_faculty(
        payload.name, payload.department, payload.workload_capacity, payload.current_workload,
        payload.is_exam_head, payload.is_invigilator,
    )
    return faculty_out(member)


@router.delete("/{faculty_id}", status_code=204)
def delete_faculty(faculty_id: int, service: ExamSchedulingService = Depends(get_service),
                   ctx: RequestContext = Depends(require_permitted)):
    service.registry.delete_faculty(faculty_id)
