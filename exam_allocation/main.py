import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from exam_allocation import config
from exam_allocation.api import exams, faculty, rooms, schedules, students, subjects
from exam_allocation.errors import SchedulingError
from exam_allocation.services.exam_service import ExamSchedulingService
from exam_allocation.utils.file_io import load_json_file
from exam_allocation.utils.logger import setup_logging

setup_logging(config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Exam Slot Allocation Service")

service = ExamSchedulingService()
if config.SEED_FILE is not None:
    seed = load_json_file(config.SEED_FILE, "seed data")
    if seed is not None:
        service.load_seed(seed)
app.state.service = service

for module in (rooms, faculty, subjects, students, schedules, exams):
    app.include_router(module.router, prefix=config.API_PREFIX)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.code})
