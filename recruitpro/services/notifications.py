from typing import Any, Dict, List, Optional

from recruitpro.models.schemas import DeliveryOutcome, NotificationRecord
from recruitpro.services.email import EmailSender, render_template
from recruitpro.services.repositories import NotificationRepository
from recruitpro.utils.exceptions import RecruitProError
from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)


class NotificationDispatcher:
    """
    Sends transactional email and keeps the audit trail.

    Every attempt is appended to the notification log with its outcome,
    including attempts where rendering or delivery raised. ``notify``
    never raises and never retries.
    """

    def __init__(self, sender: EmailSender, records: NotificationRepository, company: str = "RecruitPro"):
        self._sender = sender
        self._records = records
        self._company = company

    async def notify(
        self,
        recipient: str,
        template: str,
        context: Dict[str, Any],
        applicant_id: Optional[str] = None,
    ) -> DeliveryOutcome:
        subject, body = f"[{template}]", ""
        outcome, error = DeliveryOutcome.SENT, None
        try:
            subject, body = render_template(template, context, self._company)
            await self._sender.send(recipient, subject, body)
        except Exception as e:
            # SMTP, socket and our own errors all end up as a failed record
            outcome = DeliveryOutcome.FAILED
            error = e.message if isinstance(e, RecruitProError) else f"{type(e).__name__}: {e}"
            logger.error(
                f"Failed to send '{template}' email: {error}",
                extra={"applicant_id": applicant_id, "template": template},
            )
        else:
            logger.info(f"Sent '{template}' email", extra={"applicant_id": applicant_id})

        record = NotificationRecord(
            applicant_id=applicant_id,
            recipient=recipient,
            template=template,
            subject=subject,
            body=body,
            outcome=outcome,
            error=error,
        )
        try:
            await self._records.add(record)
        except RecruitProError as e:
            logger.error(
                f"Could not record notification attempt: {e.message}",
                extra={"applicant_id": applicant_id, "outcome": outcome.value},
            )
        return outcome

    async def history(self, applicant_id: str) -> List[NotificationRecord]:
        return await self._records.list_for_applicant(applicant_id)
