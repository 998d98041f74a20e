from typing import List

from fastapi import APIRouter, Depends

from exam_allocation.api.deps import RequestContext, get_service, require_permitted
from exam_allocation.api.presenters import student_out
from exam_allocation.schemas import (
    StudentIn,
    StudentOut,
    StudentsByProgramStats,
    StudentsBySemesterStats,
    TotalStudentsStats,
)
from exam_allocation.services.exam_service import ExamSchedulingService

router = APIRouter(prefix="/students", tags=["students"])


def _fields(payload: StudentIn) -> dict:
    return {
        "student_id": payload.student_id,
        "name": payload.name,
        "email": payload.email,
        "phone": payload.phone,
        "program_id": payload.program.id if payload.program else None,
        "semester": payload.semester,
        "status": payload.status,
        "enrollment_date": payload.enrollment_date,
        "address": payload.address,
    }


@router.get("", response_model=List[StudentOut])
def list_students(service: ExamSchedulingService = Depends(get_service)):
    return [student_out(service, s) for s in service.registry.list_students()]


@router.get("/stats/total", response_model=TotalStudentsStats)
def total_students(service: ExamSchedulingService = Depends(get_service)):
    return TotalStudentsStats(total_students=service.registry.student_stats()["total"])


@router.get("/stats/by-program", response_model=StudentsByProgramStats)
def students_by_program(service: ExamSchedulingService = Depends(get_service)):
    by_program = service.registry.student_stats()["by_program"]
    return StudentsByProgramStats(students_by_program=by_program, total_programs=len(by_program))


@router.get("/stats/by-semester", response_model=StudentsBySemesterStats)
def students_by_semester(service: ExamSchedulingService = Depends(get_service)):
    return StudentsBySemesterStats(students_by_semester=service.registry.student_stats()["by_semester"])


@router.get("/{student_pk}", response_model=StudentOut)
def get_student(student_pk: int, service: ExamSchedulingService = Depends(get_service)):
    return student_out(service, service.registry.get_student(student_pk))


@router.post("", response_model=StudentOut, status_code=201)
def create_student(payload: StudentIn, service: ExamSchedulingService = Depends(get_service),
                   ctx: RequestContext = Depends(require_permitted)):
    fields = _fields(payload)
    student = service.registry.create_student(fields.pop("student_id"), fields.pop("name"),
                                              fields.pop("email"), **fields)
    return student_out(service, student)


@router.put("/{student_pk}", response_model=StudentOut)
def update_student(student_pk: int, payload: StudentIn, service: ExamSchedulingService = Depends(get_service),
                   ctx: RequestContext = Depends(require_permitted)):
    return student_out(service, service.registry.update_student(student_pk, **_fields(payload)))


@router.delete("/{student_pk}", status_code=204)
def delete_student(student_pk: int, service: ExamSchedulingService = Depends(get_service),
                   ctx: RequestContext = Depends(require_permitted)):
    service.registry.delete_student(student_pk)
