from typing import List

from fastapi import APIRouter, Depends

from recruitpro.dependencies import (
    get_applicant_repo,
    get_notification_dispatcher,
    get_role_catalog,
)
from recruitpro.models.requests import NotificationRequest
from recruitpro.models.response import NotificationLogEntry
from recruitpro.models.schemas import DeliveryOutcome
from recruitpro.services.notifications import NotificationDispatcher
from recruitpro.services.repositories import ApplicantRepository
from recruitpro.services.roles import RoleCatalog
from recruitpro.utils.exceptions import NotFoundError
from recruitpro.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)


@router.get("/{applicant_id}", response_model=List[NotificationLogEntry])
async def get_notifications(
    applicant_id: str,
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Delivery log for one applicant, oldest first."""
    return [
        NotificationLogEntry(
            subject=n.subject,
            outcome=n.outcome,
            timestamp=n.created_at,
            template=n.template,
            error=n.error,
        )
        for n in await dispatcher.history(applicant_id)
    ]


@router.post("/{applicant_id}")
@log_api_call("send_notification")
async def send_notification(
    applicant_id: str,
    payload: NotificationRequest,
    applicants: ApplicantRepository = Depends(get_applicant_repo),
    roles: RoleCatalog = Depends(get_role_catalog),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    applicant = await applicants.get(applicant_id)
    if applicant is None:
        raise NotFoundError("Applicant not found", resource="applicant", resource_id=applicant_id)

    role = await roles.get(applicant.role_id)
    context = {"name": applicant.full_name, "position": role.title, **payload.context}
    outcome = await dispatcher.notify(applicant.email, payload.template, context, applicant_id=applicant_id)
    return {
        "applicant_id": applicant_id,
        "template": payload.template,
        "outcome": outcome.value,
        "success": outcome == DeliveryOutcome.SENT,
    }
