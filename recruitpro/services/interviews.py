"""
Interview scheduling.

Each interview is stored first and the invitation goes out through the
notification dispatcher afterwards, so it appears in the applicant's
delivery log like any other email. The delivery outcome is kept on the
interview record.
"""
from typing import List, Optional

from recruitpro.models.requests import InterviewRequest, InterviewUpdate
from recruitpro.models.schemas import (
    ApplicantModel,
    ApplicantStatus,
    DeliveryOutcome,
    InterviewModel,
)
from recruitpro.services.notifications import NotificationDispatcher
from recruitpro.services.repositories import ApplicantRepository, InterviewRepository
from recruitpro.services.roles import RoleCatalog
from recruitpro.utils.exceptions import NotFoundError, ValidationError
from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)

CLOSED_STATUSES = (ApplicantStatus.HIRED, ApplicantStatus.REJECTED)
PRE_INTERVIEW_STATUSES = (ApplicantStatus.SUBMITTED, ApplicantStatus.REVIEWED)


def format_slot(interview: InterviewModel) -> str:
    return f"{interview.scheduled_at.strftime('%B %d, %Y at %H:%M')} ({interview.duration_minutes} minutes)"


class InterviewScheduler:

    def __init__(
        self,
        applicants: ApplicantRepository,
        interviews: InterviewRepository,
        roles: RoleCatalog,
        notifier: NotificationDispatcher,
    ):
        self._applicants = applicants
        self._interviews = interviews
        self._roles = roles
        self._notifier = notifier

    async def schedule(self, request: InterviewRequest) -> InterviewModel:
        """
        Record an interview, invite the applicant and move them to
        ``interviewing``. A failed invitation does not undo the booking.
        """
        applicant = await self._applicants.get(request.applicant_id)
        if applicant is None:
            raise NotFoundError("Applicant not found", resource="applicant", resource_id=request.applicant_id)
        if applicant.status in CLOSED_STATUSES:
            raise ValidationError(
                f"Applicant is already {applicant.status.value}",
                field="applicant_id",
                value=applicant.applicant_id,
            )

        interview = await self._interviews.create(
            InterviewModel(**request.model_dump(exclude={"send_invitation"}))
        )
        logger.info(
            f"Interview {interview.interview_id} scheduled for {applicant.applicant_id}",
            extra={"applicant_id": applicant.applicant_id, "scheduled_at": interview.scheduled_at.isoformat()},
        )

        if request.send_invitation:
            outcome = await self._invite(applicant, interview)
            interview = await self._interviews.update(
                interview.interview_id, {"invitation_outcome": outcome}
            ) or interview

        if applicant.status in PRE_INTERVIEW_STATUSES:
            await self._applicants.update_status(applicant.applicant_id, ApplicantStatus.INTERVIEWING.value)
        return interview

    async def _invite(self, applicant: ApplicantModel, interview: InterviewModel) -> DeliveryOutcome:
        context = {
            "name": applicant.full_name,
            "position": await self._roles.title(applicant.role_id),
            "interview_date": format_slot(interview),
            "interview_type": interview.interview_type,
        }
        if interview.location:
            context["interview_location"] = interview.location
        return await self._notifier.notify(
            applicant.email, "interview_invitation", context, applicant_id=applicant.applicant_id
        )

    async def get(self, interview_id: str) -> InterviewModel:
        interview = await self._interviews.get(interview_id)
        if interview is None:
            raise NotFoundError("Interview not found", resource="interview", resource_id=interview_id)
        return interview

    async def list(self, applicant_id: Optional[str] = None, status: Optional[str] = None) -> List[InterviewModel]:
        return await self._interviews.list(applicant_id=applicant_id, status=status)

    async def update(self, interview_id: str, changes: InterviewUpdate) -> InterviewModel:
        data = changes.model_dump(exclude_none=True)
        if not data:
            raise ValidationError("No changes supplied")
        updated = await self._interviews.update(interview_id, data)
        if updated is None:
            raise NotFoundError("Interview not found", resource="interview", resource_id=interview_id)
        logger.info(f"Interview {interview_id} updated", extra={"fields": sorted(data)})
        return updated
