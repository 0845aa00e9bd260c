"""
Candidate intake pipeline.

``submit`` walks an application through Validating -> Deduplicating ->
Persisting -> Dispatched. Only the first two states may reject the
request; once the applicant row is inserted the outcome is success, and
the confirmation email and AI scoring run as detached tasks whose results
are only visible through the assessment and notification records.
"""
import asyncio
from typing import Optional, Set, Tuple

from recruitpro.helpers.parsing import decode_base64_document, extract_text
from recruitpro.models.requests import ApplicationRequest
from recruitpro.models.response import ApplicationReceipt
from recruitpro.models.schemas import (
    ApplicantModel,
    AssessmentModel,
    AssessmentStatus,
)
from recruitpro.models.settings import AppSettings
from recruitpro.services.duplicate_guard import DuplicateGuard
from recruitpro.services.notifications import NotificationDispatcher
from recruitpro.services.repositories import ApplicantRepository, AssessmentRepository
from recruitpro.services.roles import RoleCatalog
from recruitpro.services.scoring import ScoringEngine
from recruitpro.services.tasks import BackgroundTaskRunner
from recruitpro.utils.exceptions import (
    ExtractionFailure,
    NotFoundError,
    ScoringFailure,
    ValidationError,
)
from recruitpro.utils.logging_config import get_logger
from recruitpro.utils.utils import is_valid_email, normalize_email, utcnow

logger = get_logger(__name__)

REQUIRED_FIELDS = ("full_name", "email", "phone", "role_id")


def insufficient_data_assessment(applicant_id: str, reason: str) -> AssessmentModel:
    return AssessmentModel(
        applicant_id=applicant_id,
        status=AssessmentStatus.COMPLETED,
        insufficient_data=True,
        insights=[f"Insufficient data for AI assessment: {reason}"],
        processed_at=utcnow(),
    )


class IntakeOrchestrator:

    def __init__(
        self,
        applicants: ApplicantRepository,
        assessments: AssessmentRepository,
        guard: DuplicateGuard,
        scorer: ScoringEngine,
        notifier: NotificationDispatcher,
        roles: RoleCatalog,
        runner: BackgroundTaskRunner,
        settings: AppSettings,
    ):
        self._applicants = applicants
        self._assessments = assessments
        self._guard = guard
        self._scorer = scorer
        self._notifier = notifier
        self._roles = roles
        self._runner = runner
        self._settings = settings
        self._in_flight: Set[str] = set()

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    async def submit(self, request: ApplicationRequest) -> ApplicationReceipt:
        # Validating
        self._validate(request)
        email = normalize_email(request.email)
        role_id = request.role_id.strip()

        # Deduplicating
        await self._guard.ensure_unique(email, role_id)

        # pdfminer and python-docx are blocking and can be slow on large files
        loop = asyncio.get_running_loop()
        resume_text, extraction_error = await loop.run_in_executor(None, self._extract, request)

        # Persisting: the commit point
        applicant = await self._applicants.create(ApplicantModel(
            full_name=request.full_name.strip(),
            email=email,
            phone=request.phone.strip(),
            profile_url=(request.profile_url or "").strip() or None,
            role_id=role_id,
            resume_filename=request.resume_filename,
            resume_text=resume_text,
        ))
        logger.info(
            f"Application {applicant.applicant_id} created for role {role_id}",
            extra={"applicant_id": applicant.applicant_id, "has_resume_text": resume_text is not None},
        )

        # Dispatched: from here on nothing may change the outcome
        self._runner.spawn(self.send_confirmation(applicant), name=f"notify:{applicant.applicant_id}")
        try:
            if resume_text:
                await self._start_scoring(applicant.applicant_id)
            elif extraction_error:
                await self._assessments.create(
                    insufficient_data_assessment(applicant.applicant_id, extraction_error)
                )
        except Exception as e:
            # The pending-assessment marker could not be written; the
            # recovery sweep picks the applicant up again later
            logger.error(
                f"Post-commit dispatch failed for {applicant.applicant_id}: {e}",
                extra={"applicant_id": applicant.applicant_id},
                exc_info=True,
            )

        return ApplicationReceipt(application_id=applicant.applicant_id)

    def _validate(self, request: ApplicationRequest) -> None:
        for field in REQUIRED_FIELDS:
            value = getattr(request, field)
            if value is None or not str(value).strip():
                raise ValidationError(f"'{field}' is required", field=field)
        if not is_valid_email(request.email):
            raise ValidationError("Invalid email address", field="email", value=request.email)
        if request.resume_base64 and not (request.resume_filename or "").strip():
            raise ValidationError("'resume_filename' is required when a resume is attached", field="resume_filename")

    def _extract(self, request: ApplicationRequest) -> Tuple[Optional[str], Optional[str]]:
        """Returns (resume_text, extraction_error). Both None when no document was sent."""
        if not request.resume_base64:
            return None, None
        try:
            content = decode_base64_document(request.resume_base64, request.resume_filename)
            text = extract_text(
                request.resume_filename,
                content,
                min_chars=self._settings.scoring.min_resume_chars,
            )
            return text, None
        except ExtractionFailure as e:
            logger.warning(
                f"Resume extraction failed, continuing without text: {e.message}",
                extra={"resume_filename": request.resume_filename},
            )
            return None, e.message

    # ------------------------------------------------------------------
    # Detached work
    # ------------------------------------------------------------------

    async def send_confirmation(self, applicant: ApplicantModel) -> None:
        # The delivery log must get an entry even when the role store is down
        await self._notifier.notify(
            applicant.email,
            "application_confirmation",
            {"name": applicant.full_name, "position": await self._roles.title(applicant.role_id)},
            applicant_id=applicant.applicant_id,
        )

    async def _start_scoring(self, applicant_id: str) -> bool:
        await self._assessments.create(AssessmentModel(applicant_id=applicant_id))
        return self._spawn_scoring(applicant_id)

    def _spawn_scoring(self, applicant_id: str) -> bool:
        if applicant_id in self._in_flight:
            return False
        self._in_flight.add(applicant_id)
        self._runner.spawn(self.run_assessment(applicant_id), name=f"assessment:{applicant_id}")
        return True

    async def run_assessment(self, applicant_id: str) -> Optional[AssessmentStatus]:
        """
        Score one applicant and finalize the pending assessment.

        This task is the only writer of the assessment's terminal state.
        Returns the status written, or None when there was nothing to write.
        """
        try:
            applicant = await self._applicants.get(applicant_id)
            if applicant is None:
                logger.info(f"Applicant {applicant_id} no longer exists, skipping assessment")
                return None

            if not applicant.resume_text:
                update = {
                    "status": AssessmentStatus.COMPLETED,
                    "insufficient_data": True,
                    "insights": ["Insufficient data for AI assessment: no resume text available"],
                }
            else:
                try:
                    role = await self._roles.get(applicant.role_id)
                    card = await self._scorer.score(applicant.resume_text, role)
                except ScoringFailure as e:
                    logger.error(f"Assessment {applicant_id} failed: {e.message}", extra={"applicant_id": applicant_id})
                    update = {"status": AssessmentStatus.FAILED, "insights": [e.message]}
                except Exception as e:
                    logger.error(f"Unexpected scoring error for {applicant_id}: {e}", exc_info=True)
                    update = {"status": AssessmentStatus.FAILED, "insights": [f"Assessment failed: {e}"]}
                else:
                    update = {
                        "status": AssessmentStatus.COMPLETED,
                        "insufficient_data": False,
                        **card.model_dump(),
                    }

            if not await self._assessments.finalize(applicant_id, update):
                logger.info(f"Assessment for {applicant_id} is no longer pending, result discarded")
                return None
            logger.info(
                f"Assessment for {applicant_id} finalized as {update['status'].value}",
                extra={"applicant_id": applicant_id},
            )
            return update["status"]
        finally:
            self._in_flight.discard(applicant_id)

    # ------------------------------------------------------------------
    # Staff operations
    # ------------------------------------------------------------------

    async def reassess(self, applicant_id: str) -> AssessmentModel:
        """Reset the applicant's assessment to pending and score it again."""
        applicant = await self._applicants.get(applicant_id)
        if applicant is None:
            raise NotFoundError("Applicant not found", resource="applicant", resource_id=applicant_id)

        if not applicant.resume_text:
            return await self._assessments.create(
                insufficient_data_assessment(applicant_id, "no resume text available")
            )
        if applicant_id in self._in_flight:
            return await self._assessments.get_by_applicant(applicant_id)

        assessment = await self._assessments.create(AssessmentModel(applicant_id=applicant_id))
        self._spawn_scoring(applicant_id)
        return assessment

    async def recover_pending(self, include_failed: bool = False) -> int:
        """
        Respawn scoring for assessments left pending (e.g. by a restart) and
        for applicants with resume text but no assessment at all.
        """
        scheduled = 0
        for assessment in await self._assessments.list(status=AssessmentStatus.PENDING.value):
            if self._spawn_scoring(assessment.applicant_id):
                scheduled += 1

        candidates = await self._applicants.list_with_resume_text()
        existing = await self._assessments.get_for_applicants(a.applicant_id for a in candidates)
        for applicant in candidates:
            current = existing.get(applicant.applicant_id)
            needs_run = current is None or (include_failed and current.status == AssessmentStatus.FAILED)
            if needs_run and applicant.applicant_id not in self._in_flight:
                await self._start_scoring(applicant.applicant_id)
                scheduled += 1

        logger.info(f"Recovery sweep scheduled {scheduled} assessments")
        return scheduled
