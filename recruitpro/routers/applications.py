from typing import List, Optional

import pandas as pd
from fastapi import APIRouter, Depends, Query, Request, Response

from recruitpro.dependencies import (
    get_applicant_repo,
    get_assessment_repo,
    get_interview_repo,
    get_notification_repo,
    get_orchestrator,
)
from recruitpro.models.requests import ApplicationRequest, StatusUpdate
from recruitpro.models.response import (
    ApplicantDetail,
    ApplicationReceipt,
    AssessmentView,
    ErrorResponse,
    NotificationLogEntry,
)
from recruitpro.models.schemas import ApplicantModel, ApplicantStatus
from recruitpro.services.intake import IntakeOrchestrator
from recruitpro.services.repositories import (
    ApplicantRepository,
    AssessmentRepository,
    InterviewRepository,
    NotificationRepository,
)
from recruitpro.utils.exceptions import NotFoundError
from recruitpro.utils.logging_config import PerformanceMonitor, get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)

EXPORT_COLUMNS = ["applicant_id", "full_name", "email", "phone", "role_id", "status", "created_at"]

INTAKE_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing or malformed field"},
    409: {"model": ErrorResponse, "description": "Already applied for this role"},
}


def _not_found(applicant_id: str) -> NotFoundError:
    return NotFoundError("Applicant not found", resource="applicant", resource_id=applicant_id)


@router.post("", response_model=ApplicationReceipt, status_code=201, responses=INTAKE_ERRORS)
@log_api_call("submit_application")
async def submit_application(
    payload: ApplicationRequest,
    request: Request,
    orchestrator: IntakeOrchestrator = Depends(get_orchestrator),
):
    """Submit an application for one role. Scoring and the confirmation email run afterwards."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info(
        f"Application received for role {payload.role_id}",
        extra={"request_id": request_id, "has_resume": bool(payload.resume_base64)},
    )
    return await orchestrator.submit(payload)


@router.get("", response_model=List[ApplicantModel])
async def list_applications(
    search: Optional[str] = None,
    role_id: Optional[str] = None,
    status: Optional[ApplicantStatus] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    applicants: ApplicantRepository = Depends(get_applicant_repo),
):
    with PerformanceMonitor("list_applications", logger):
        return await applicants.list(
            search=search,
            role_id=role_id,
            status=status.value if status else None,
            limit=limit,
            offset=offset,
        )


@router.get("/export")
@log_api_call("export_applications")
async def export_applications(
    role_id: Optional[str] = None,
    applicants: ApplicantRepository = Depends(get_applicant_repo),
):
    """All applicants (optionally one role) as CSV."""
    rows = await applicants.list(role_id=role_id)
    df = pd.DataFrame(
        [{**a.model_dump(include=set(EXPORT_COLUMNS)), "status": a.status.value} for a in rows],
        columns=EXPORT_COLUMNS,
    )
    filename = f"applicants_{role_id}.csv" if role_id else "applicants.csv"
    return Response(
        content=df.to_csv(index=False),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{applicant_id}", response_model=ApplicantDetail)
async def get_application(
    applicant_id: str,
    applicants: ApplicantRepository = Depends(get_applicant_repo),
    assessments: AssessmentRepository = Depends(get_assessment_repo),
    notifications: NotificationRepository = Depends(get_notification_repo),
):
    applicant = await applicants.get(applicant_id)
    if applicant is None:
        raise _not_found(applicant_id)

    assessment = await assessments.get_by_applicant(applicant_id)
    history = await notifications.list_for_applicant(applicant_id)
    return ApplicantDetail(
        applicant=applicant,
        assessment=AssessmentView.from_model(assessment) if assessment else None,
        notifications=[
            NotificationLogEntry(
                subject=n.subject,
                outcome=n.outcome,
                timestamp=n.created_at,
                template=n.template,
                error=n.error,
            )
            for n in history
        ],
    )


@router.patch("/{applicant_id}/status", response_model=ApplicantModel)
@log_api_call("update_application_status")
async def update_status(
    applicant_id: str,
    payload: StatusUpdate,
    applicants: ApplicantRepository = Depends(get_applicant_repo),
):
    updated = await applicants.update_status(applicant_id, payload.status.value)
    if updated is None:
        raise _not_found(applicant_id)
    logger.info(f"Applicant {applicant_id} moved to {payload.status.value}")
    return updated


@router.delete("/{applicant_id}")
@log_api_call("delete_application")
async def delete_application(
    applicant_id: str,
    applicants: ApplicantRepository = Depends(get_applicant_repo),
    assessments: AssessmentRepository = Depends(get_assessment_repo),
    notifications: NotificationRepository = Depends(get_notification_repo),
    interviews: InterviewRepository = Depends(get_interview_repo),
):
    """Delete the applicant with its assessment, interviews and notification log."""
    if not await applicants.delete(applicant_id):
        raise _not_found(applicant_id)

    # A scoring task still in flight finds no pending row and discards its result
    removed_assessments = await assessments.delete_by_applicant(applicant_id)
    removed_notifications = await notifications.delete_by_applicant(applicant_id)
    removed_interviews = await interviews.delete_by_applicant(applicant_id)
    logger.info(
        f"Deleted applicant {applicant_id}",
        extra={
            "assessments": removed_assessments,
            "notifications": removed_notifications,
            "interviews": removed_interviews,
        },
    )
    return {"applicant_id": applicant_id, "message": "Application deleted successfully"}
