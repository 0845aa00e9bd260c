import asyncio
import base64
import time
from unittest.mock import AsyncMock, patch

import pytest

from recruitpro.models.requests import ApplicationRequest
from recruitpro.models.schemas import AssessmentModel, AssessmentStatus, DeliveryOutcome
from recruitpro.utils.exceptions import DatabaseError, DuplicateApplication, NotFoundError, ValidationError

from conftest import RESUME_TEXT


def b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


def application(email="alice@x.com", role_id="R1", resume=None, filename="resume.txt", **overrides):
    data = {
        "full_name": "Alice Example",
        "email": email,
        "phone": "+1 555 0100",
        "role_id": role_id,
    }
    if resume is not None:
        data.update({"resume_base64": b64(resume), "resume_filename": filename})
    data.update(overrides)
    return ApplicationRequest(**data)


LONG_RESUME = (RESUME_TEXT * 12)[:2000]


class TestSubmission:
    """Validating -> Deduplicating -> Persisting -> Dispatched"""

    @pytest.mark.asyncio
    async def test_valid_submission_creates_exactly_one_applicant(self, orchestrator, applicants, runner):
        receipt = await orchestrator.submit(application(resume=LONG_RESUME))
        await runner.drain()

        assert receipt.application_id in applicants.rows
        assert len(applicants.rows) == 1
        stored = applicants.rows[receipt.application_id]
        assert stored.email == "alice@x.com"
        assert stored.resume_text.startswith("Senior backend engineer")

    @pytest.mark.asyncio
    async def test_email_is_normalized_before_dedupe(self, orchestrator, applicants, runner):
        await orchestrator.submit(application(email="  Alice@X.com "))
        with pytest.raises(DuplicateApplication):
            await orchestrator.submit(application(email="alice@x.com"))
        await runner.drain()
        assert len(applicants.rows) == 1

    @pytest.mark.parametrize("field", ["full_name", "email", "phone", "role_id"])
    @pytest.mark.asyncio
    async def test_blank_required_field_is_rejected(self, orchestrator, applicants, field):
        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.submit(application(**{field: "   "}))
        assert exc_info.value.details["field"] == field
        assert applicants.rows == {}

    @pytest.mark.asyncio
    async def test_malformed_email_is_rejected(self, orchestrator, applicants):
        with pytest.raises(ValidationError):
            await orchestrator.submit(application(email="not-an-email"))
        assert applicants.rows == {}

    @pytest.mark.asyncio
    async def test_resume_without_filename_is_rejected(self, orchestrator):
        with pytest.raises(ValidationError):
            await orchestrator.submit(application(resume=LONG_RESUME, filename=None))

    @pytest.mark.asyncio
    async def test_no_document_means_no_assessment(self, orchestrator, assessments, generate, runner):
        receipt = await orchestrator.submit(application())
        await runner.drain()

        assert receipt.application_id
        assert assessments.rows == {}
        assert generate.calls == []

    @pytest.mark.asyncio
    async def test_confirmation_email_is_sent_and_logged(self, orchestrator, sender, notification_records, runner):
        receipt = await orchestrator.submit(application(role_id="backend-developer"))
        await runner.drain()

        assert len(sender.sent) == 1
        to_email, subject, _ = sender.sent[0]
        assert to_email == "alice@x.com"
        assert subject == "Application Confirmation - Backend Developer"
        record = notification_records.rows[0]
        assert record.applicant_id == receipt.application_id
        assert record.outcome == DeliveryOutcome.SENT

    @pytest.mark.asyncio
    async def test_email_failure_does_not_change_outcome(self, orchestrator, sender, notification_records, runner):
        sender.error = ConnectionRefusedError("smtp down")

        receipt = await orchestrator.submit(application())
        await runner.drain()

        assert receipt.application_id
        assert notification_records.rows[0].outcome == DeliveryOutcome.FAILED
        assert "smtp down" in notification_records.rows[0].error

    @pytest.mark.asyncio
    async def test_assessment_marker_failure_does_not_change_outcome(self, orchestrator, assessments, applicants, runner):
        assessments.create = AsyncMock(side_effect=DatabaseError("write failed"))

        receipt = await orchestrator.submit(application(resume=LONG_RESUME))
        await runner.drain()

        assert receipt.application_id in applicants.rows

    @pytest.mark.asyncio
    async def test_role_store_outage_still_logs_confirmation(self, orchestrator, catalog, sender, notification_records, runner):
        catalog._roles.get = AsyncMock(side_effect=DatabaseError("roles unavailable"))

        receipt = await orchestrator.submit(application(role_id="backend-developer"))
        await runner.drain()

        [record] = notification_records.rows
        assert record.applicant_id == receipt.application_id
        assert record.outcome == DeliveryOutcome.SENT
        assert sender.sent[0][1] == "Application Confirmation - Backend Developer"

    @pytest.mark.asyncio
    async def test_extraction_runs_off_the_event_loop(self, orchestrator, runner):
        def slow_pdf(content: bytes) -> str:
            time.sleep(0.3)
            return LONG_RESUME

        loop = asyncio.get_running_loop()
        finished = asyncio.Event()
        gaps = []

        async def heartbeat():
            last = loop.time()
            while not finished.is_set():
                await asyncio.sleep(0.02)
                now = loop.time()
                gaps.append(now - last)
                last = now

        ticker = asyncio.ensure_future(heartbeat())
        with patch.dict("recruitpro.helpers.parsing.READERS", {".pdf": slow_pdf}):
            receipt = await orchestrator.submit(application(resume="%PDF-1.4 fake", filename="cv.pdf"))
        finished.set()
        await ticker
        await runner.drain()

        assert receipt.application_id
        assert len(gaps) > 5
        assert max(gaps) < 0.2


class TestScenarios:
    """End-to-end intake scenarios"""

    @pytest.mark.asyncio
    async def test_scenario_a_resume_is_scored_in_background(self, orchestrator, assessments, runner, generate):
        receipt = await orchestrator.submit(application(resume=LONG_RESUME))
        await runner.drain()

        assessment = assessments.rows[receipt.application_id]
        assert assessment.status == AssessmentStatus.COMPLETED
        assert assessment.insufficient_data is False
        for score in (assessment.overall, assessment.skills, assessment.experience, assessment.education):
            assert 0 <= score <= 100
        assert assessment.insights
        assert len(generate.calls) == 1

    @pytest.mark.asyncio
    async def test_scenario_b_repeat_for_same_role_is_duplicate(self, orchestrator, applicants, runner):
        first = await orchestrator.submit(application(resume=LONG_RESUME))

        with pytest.raises(DuplicateApplication) as exc_info:
            await orchestrator.submit(application(resume=LONG_RESUME))
        await runner.drain()

        assert "already applied for this position" in exc_info.value.message
        assert exc_info.value.details["existing_application_id"] == first.application_id
        assert len(applicants.rows) == 1

    @pytest.mark.asyncio
    async def test_scenario_c_same_email_different_role_succeeds(self, orchestrator, applicants, runner):
        await orchestrator.submit(application(role_id="R1"))
        await orchestrator.submit(application(role_id="R2"))
        await runner.drain()

        rows = [a for a in applicants.rows.values() if a.email == "alice@x.com"]
        assert sorted(a.role_id for a in rows) == ["R1", "R2"]

    @pytest.mark.asyncio
    async def test_scenario_d_short_resume_is_terminal_without_scoring(self, orchestrator, assessments, generate, runner):
        receipt = await orchestrator.submit(application(resume="0123456789"))
        await runner.drain()

        assessment = assessments.rows[receipt.application_id]
        assert assessment.status == AssessmentStatus.COMPLETED
        assert assessment.insufficient_data is True
        assert assessment.overall is None
        assert assessment.insights[0].startswith("Insufficient data for AI assessment")
        assert generate.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_document_is_treated_as_insufficient(self, orchestrator, assessments, applicants, generate, runner):
        receipt = await orchestrator.submit(application(resume=LONG_RESUME, filename="resume.exe"))
        await runner.drain()

        assert applicants.rows[receipt.application_id].resume_text is None
        assert assessments.rows[receipt.application_id].insufficient_data is True
        assert generate.calls == []


class TestAssessmentTask:
    """The detached scoring task"""

    @pytest.mark.asyncio
    async def test_scoring_failure_finalizes_as_failed(self, orchestrator, assessments, generate, runner):
        generate.response = {"overall": "excellent"}

        receipt = await orchestrator.submit(application(resume=LONG_RESUME))
        await runner.drain()

        assessment = assessments.rows[receipt.application_id]
        assert assessment.status == AssessmentStatus.FAILED
        assert "malformed model output" in assessment.insights[0]
        assert assessment.processed_at is not None

    @pytest.mark.asyncio
    async def test_deleted_applicant_is_skipped(self, orchestrator, assessments, generate):
        assert await orchestrator.run_assessment("missing") is None
        assert generate.calls == []
        assert assessments.rows == {}

    @pytest.mark.asyncio
    async def test_assessment_deleted_mid_flight_discards_result(self, orchestrator, make_applicant, assessments):
        applicant = await make_applicant("Bob Builder")
        # no pending row exists, so there is nothing to finalize
        assert await orchestrator.run_assessment(applicant.applicant_id) is None
        assert assessments.rows == {}

    @pytest.mark.asyncio
    async def test_terminal_state_is_written_once(self, orchestrator, make_applicant, assessments):
        applicant = await make_applicant("Carol Danvers")
        await assessments.create(AssessmentModel(applicant_id=applicant.applicant_id))

        assert await orchestrator.run_assessment(applicant.applicant_id) == AssessmentStatus.COMPLETED
        first = assessments.rows[applicant.applicant_id]
        assert await orchestrator.run_assessment(applicant.applicant_id) is None
        assert assessments.rows[applicant.applicant_id] == first

    @pytest.mark.asyncio
    async def test_role_lookup_failure_finalizes_as_failed(self, orchestrator, make_applicant, assessments, catalog, generate):
        applicant = await make_applicant("Dana Scully")
        await assessments.create(AssessmentModel(applicant_id=applicant.applicant_id))
        catalog._roles.get = AsyncMock(side_effect=DatabaseError("roles unavailable"))

        assert await orchestrator.run_assessment(applicant.applicant_id) == AssessmentStatus.FAILED

        assessment = assessments.rows[applicant.applicant_id]
        assert "roles unavailable" in assessment.insights[0]
        assert generate.calls == []


class TestStaffOperations:
    """Re-run and recovery sweep"""

    @pytest.mark.asyncio
    async def test_reassess_rescores(self, orchestrator, make_applicant, assessments, generate, runner):
        applicant = await make_applicant("Dan Brown", overall=40)

        pending = await orchestrator.reassess(applicant.applicant_id)
        assert pending.status == AssessmentStatus.PENDING
        await runner.drain()

        assert assessments.rows[applicant.applicant_id].overall == 82
        assert len(generate.calls) == 1

    @pytest.mark.asyncio
    async def test_reassess_unknown_applicant(self, orchestrator):
        with pytest.raises(NotFoundError):
            await orchestrator.reassess("nope")

    @pytest.mark.asyncio
    async def test_reassess_without_text_is_insufficient(self, orchestrator, make_applicant, generate):
        applicant = await make_applicant("Eve Online", resume_text=None)
        assessment = await orchestrator.reassess(applicant.applicant_id)
        assert assessment.insufficient_data is True
        assert generate.calls == []

    @pytest.mark.asyncio
    async def test_recovery_sweep_picks_up_pending_and_missing(self, orchestrator, make_applicant, assessments, runner, generate):
        stuck = await make_applicant("Frank Pending")
        await assessments.create(AssessmentModel(applicant_id=stuck.applicant_id))
        never = await make_applicant("Grace Missing")
        done = await make_applicant("Heidi Done", overall=75)
        await make_applicant("Ivan NoText", resume_text=None)

        scheduled = await orchestrator.recover_pending()
        await runner.drain()

        assert scheduled == 2
        assert assessments.rows[stuck.applicant_id].status == AssessmentStatus.COMPLETED
        assert assessments.rows[never.applicant_id].status == AssessmentStatus.COMPLETED
        assert assessments.rows[done.applicant_id].overall == 75
        assert len(generate.calls) == 2

    @pytest.mark.asyncio
    async def test_bulk_sweep_retries_failed(self, orchestrator, make_applicant, assessments, runner):
        applicant = await make_applicant("Judy Failed")
        await assessments.create(AssessmentModel(applicant_id=applicant.applicant_id, status=AssessmentStatus.FAILED))

        assert await orchestrator.recover_pending() == 0
        assert await orchestrator.recover_pending(include_failed=True) == 1
        await runner.drain()

        assert assessments.rows[applicant.applicant_id].status == AssessmentStatus.COMPLETED
