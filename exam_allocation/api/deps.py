from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from exam_allocation import config
from exam_allocation.services.exam_service import ExamSchedulingService


@dataclass(frozen=True)
class RequestContext:
    """Per-request caller information handed to mutating handlers."""

    permitted: bool
    token_supplied: bool


def get_service(request: Request) -> ExamSchedulingService:
    return request.app.state.service


def get_context(x_admin_token: Optional[str] = Header(default=None)) -> RequestContext:
    expected = config.ADMIN_TOKEN
    permitted = expected is None or x_admin_token == expected
    return RequestContext(permitted=permitted, token_supplied=x_admin_token is not None)


def require_permitted(ctx: RequestContext = Depends(get_context)) -> RequestContext:
    if not ctx.permitted:
        raise HTTPException(status_code=403, detail="Caller is not permitted to change exam data")
    return ctx
