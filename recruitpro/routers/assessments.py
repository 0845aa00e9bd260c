from typing import List, Optional

from fastapi import APIRouter, Depends

from recruitpro.dependencies import get_assessment_repo, get_orchestrator
from recruitpro.models.response import AssessmentView, SweepResponse
from recruitpro.models.schemas import AssessmentStatus
from recruitpro.services.intake import IntakeOrchestrator
from recruitpro.services.repositories import AssessmentRepository
from recruitpro.utils.exceptions import NotFoundError
from recruitpro.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=List[AssessmentView])
async def list_assessments(
    status: Optional[AssessmentStatus] = None,
    assessments: AssessmentRepository = Depends(get_assessment_repo),
):
    rows = await assessments.list(status=status.value if status else None)
    return [AssessmentView.from_model(a) for a in rows]


@router.get("/{applicant_id}", response_model=AssessmentView)
async def get_assessment(
    applicant_id: str,
    assessments: AssessmentRepository = Depends(get_assessment_repo),
):
    assessment = await assessments.get_by_applicant(applicant_id)
    if assessment is None:
        raise NotFoundError("Assessment not found", resource="assessment", resource_id=applicant_id)
    return AssessmentView.from_model(assessment)


@router.post("/bulk", response_model=SweepResponse, status_code=202)
@log_api_call("bulk_assessment")
async def run_bulk_assessment(orchestrator: IntakeOrchestrator = Depends(get_orchestrator)):
    """Rescore everything pending, failed, or never assessed."""
    scheduled = await orchestrator.recover_pending(include_failed=True)
    return SweepResponse(scheduled=scheduled, message=f"Scheduled {scheduled} assessments")


@router.post("/{applicant_id}/run", response_model=AssessmentView, status_code=202)
@log_api_call("run_assessment")
async def run_assessment(
    applicant_id: str,
    orchestrator: IntakeOrchestrator = Depends(get_orchestrator),
):
    assessment = await orchestrator.reassess(applicant_id)
    return AssessmentView.from_model(assessment)
