from typing import List

from fastapi import APIRouter, Depends

from exam_allocation.api.deps import RequestContext, get_service, require_permitted
from exam_allocation.api.presenters import subject_out
from exam_allocation.schemas import ProgramIn, ProgramOut, SubjectIn, SubjectOut
from exam_allocation.services.exam_service import ExamSchedulingService

router = APIRouter(tags=["subjects"])


@router.get("/programs", response_model=List[ProgramOut])
def list_programs(service: ExamSchedulingService = Depends(get_service)):
    return [ProgramOut(id=p.id, name=p.name, department=p.department, code=p.code)
            for p in service.registry.list_programs()]


@router.post("/programs", response_model=ProgramOut, status_code=201)
def create_program(payload: ProgramIn, service: ExamSchedulingService = Depends(get_service),
                   ctx: RequestContext = Depends(require_permitted)):
    p = service.registry.create_program(payload.name, payload.department, payload.code)
    return ProgramOut(id=p.id, name=p.name, department=p.department, code=p.code)


@router.get("/subjects", response_model=List[SubjectOut])
def list_subjects(service: ExamSchedulingService = Depends(get_service)):
    return [subject_out(service, s) for s in service.registry.list_subjects()]


@router.get("/subjects/program/{program_id}", response_model=List[SubjectOut])
def list_subjects_by_program(program_id: int, service: ExamSchedulingService = Depends(get_service)):
    service.registry.get_program(program_id)
    return [subject_out(service, s) for s in service.registry.list_subjects(program_id)]


@router.get("/subjects/{subject_id}", response_model=SubjectOut)
def get_subject(subject_id: int, service: ExamSchedulingService = Depends(get_service)):
    return subject_out(service, service.registry.get_subject(subject_id))


@router.post("/subjects", response_model=SubjectOut, status_code=201)
def create_subject(payload: SubjectIn, service: ExamSchedulingService = Depends(get_service),
                   ctx: RequestContext = Depends(require_permitted)):
    subject = service.registry.create_subject(
        payload.name, payload.code, payload.program_id, payload.regular_students, payload.backlog_students,
    )
    return subject_out(service, subject)
