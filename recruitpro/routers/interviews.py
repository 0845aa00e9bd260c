from typing import List, Optional

from fastapi import APIRouter, Depends

from recruitpro.dependencies import get_interview_scheduler
from recruitpro.models.requests import InterviewRequest, InterviewUpdate
from recruitpro.models.schemas import InterviewModel, InterviewStatus
from recruitpro.services.interviews import InterviewScheduler
from recruitpro.utils.logging_config import log_api_call

router = APIRouter()


@router.get("", response_model=List[InterviewModel])
async def list_interviews(
    applicant_id: Optional[str] = None,
    status: Optional[InterviewStatus] = None,
    scheduler: InterviewScheduler = Depends(get_interview_scheduler),
):
    """Interviews in schedule order, optionally for one applicant or status."""
    return await scheduler.list(applicant_id=applicant_id, status=status.value if status else None)


@router.post("", response_model=InterviewModel, status_code=201)
@log_api_call("schedule_interview")
async def schedule_interview(
    payload: InterviewRequest,
    scheduler: InterviewScheduler = Depends(get_interview_scheduler),
):
    return await scheduler.schedule(payload)


@router.get("/{interview_id}", response_model=InterviewModel)
async def get_interview(interview_id: str, scheduler: InterviewScheduler = Depends(get_interview_scheduler)):
    return await scheduler.get(interview_id)


@router.put("/{interview_id}", response_model=InterviewModel)
@log_api_call("update_interview")
async def update_interview(
    interview_id: str,
    payload: InterviewUpdate,
    scheduler: InterviewScheduler = Depends(get_interview_scheduler),
):
    return await scheduler.update(interview_id, payload)
