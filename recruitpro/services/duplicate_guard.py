from typing import Optional

from recruitpro.models.schemas import ApplicantModel
from recruitpro.services.repositories import ApplicantRepository
from recruitpro.utils.exceptions import DuplicateApplication
from recruitpro.utils.logging_config import get_logger
from recruitpro.utils.utils import normalize_email

logger = get_logger(__name__)


class DuplicateGuard:
    """Rejects a second application for the same (email, role)."""

    def __init__(self, applicants: ApplicantRepository):
        self._applicants = applicants

    async def check_duplicate(self, email: str, role_id: str) -> Optional[ApplicantModel]:
        # Exact match on normalized email and role id, nothing fuzzy
        return await self._applicants.find_by_email_and_role(normalize_email(email), role_id.strip())

    async def ensure_unique(self, email: str, role_id: str) -> None:
        existing = await self.check_duplicate(email, role_id)
        if existing:
            logger.warning(
                "Duplicate application blocked",
                extra={"role_id": role_id, "existing_applicant_id": existing.applicant_id},
            )
            raise DuplicateApplication(
                normalize_email(email), role_id.strip(), existing_id=existing.applicant_id
            )
