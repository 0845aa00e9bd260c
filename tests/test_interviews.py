import smtplib
from datetime import datetime

import pytest

from recruitpro.models.requests import InterviewRequest, InterviewUpdate
from recruitpro.models.schemas import ApplicantStatus, DeliveryOutcome, InterviewStatus
from recruitpro.services.interviews import InterviewScheduler
from recruitpro.services.notifications import NotificationDispatcher
from recruitpro.utils.exceptions import NotFoundError, ValidationError

from conftest import FakeSender

SLOT = datetime(2024, 5, 3, 14, 30)


def booking(applicant_id, **overrides):
    data = {"applicant_id": applicant_id, "scheduled_at": SLOT, "location": "Meeting room 2"}
    data.update(overrides)
    return InterviewRequest(**data)


class TestScheduling:
    """Booking an interview and sending the invitation"""

    @pytest.mark.asyncio
    async def test_schedule_invites_and_advances_applicant(
        self, scheduler, make_applicant, applicants, interview_records, sender, notification_records
    ):
        applicant = await make_applicant("Grace Hopper")

        interview = await scheduler.schedule(booking(applicant.applicant_id))

        assert interview.interview_id in interview_records.rows
        assert interview.status == InterviewStatus.SCHEDULED
        assert interview.invitation_outcome == DeliveryOutcome.SENT

        to_email, subject, body = sender.sent[0]
        assert to_email == "grace.hopper@example.com"
        assert subject == "Interview Invitation - Backend Developer"
        assert "May 03, 2024 at 14:30 (60 minutes)" in body
        assert "Meeting room 2" in body

        assert notification_records.rows[0].template == "interview_invitation"
        assert applicants.rows[applicant.applicant_id].status == ApplicantStatus.INTERVIEWING

    @pytest.mark.asyncio
    async def test_missing_location_uses_placeholder(self, scheduler, make_applicant, sender):
        applicant = await make_applicant("Grace Hopper")

        await scheduler.schedule(booking(applicant.applicant_id, location=None, interview_type="phone"))

        body = sender.sent[0][2]
        assert "shared before the interview" in body
        assert "Type: phone" in body

    @pytest.mark.asyncio
    async def test_unknown_applicant(self, scheduler, interview_records):
        with pytest.raises(NotFoundError):
            await scheduler.schedule(booking("missing"))
        assert interview_records.rows == {}

    @pytest.mark.parametrize("status", ["hired", "rejected"])
    @pytest.mark.asyncio
    async def test_closed_applicant_is_rejected(self, scheduler, make_applicant, applicants, sender, status):
        applicant = await make_applicant("Grace Hopper")
        await applicants.update_status(applicant.applicant_id, status)

        with pytest.raises(ValidationError):
            await scheduler.schedule(booking(applicant.applicant_id))
        assert sender.sent == []

    @pytest.mark.asyncio
    async def test_without_invitation(self, scheduler, make_applicant, sender, notification_records):
        applicant = await make_applicant("Grace Hopper")

        interview = await scheduler.schedule(booking(applicant.applicant_id, send_invitation=False))

        assert interview.invitation_outcome is None
        assert sender.sent == []
        assert notification_records.rows == []

    @pytest.mark.asyncio
    async def test_failed_invitation_keeps_the_booking(
        self, applicants, interview_records, catalog, notification_records, make_applicant
    ):
        dispatcher = NotificationDispatcher(FakeSender(error=smtplib.SMTPException("451 later")), notification_records)
        scheduler = InterviewScheduler(applicants, interview_records, catalog, dispatcher)
        applicant = await make_applicant("Grace Hopper")

        interview = await scheduler.schedule(booking(applicant.applicant_id))

        assert interview_records.rows[interview.interview_id].invitation_outcome == DeliveryOutcome.FAILED
        assert notification_records.rows[0].outcome == DeliveryOutcome.FAILED

    @pytest.mark.asyncio
    async def test_second_interview_keeps_status(self, scheduler, make_applicant, applicants):
        applicant = await make_applicant("Grace Hopper")
        await applicants.update_status(applicant.applicant_id, "interviewing")

        await scheduler.schedule(booking(applicant.applicant_id))

        assert applicants.rows[applicant.applicant_id].status == ApplicantStatus.INTERVIEWING


class TestInterviewUpdates:
    """Editing and listing interviews"""

    @pytest.mark.asyncio
    async def test_update_fields_and_status(self, scheduler, make_applicant):
        applicant = await make_applicant("Grace Hopper")
        interview = await scheduler.schedule(booking(applicant.applicant_id, send_invitation=False))

        updated = await scheduler.update(
            interview.interview_id,
            InterviewUpdate(status=InterviewStatus.COMPLETED, notes="Strong on systems design"),
        )

        assert updated.status == InterviewStatus.COMPLETED
        assert updated.notes == "Strong on systems design"
        assert updated.location == "Meeting room 2"

    @pytest.mark.asyncio
    async def test_empty_update(self, scheduler, make_applicant):
        applicant = await make_applicant("Grace Hopper")
        interview = await scheduler.schedule(booking(applicant.applicant_id, send_invitation=False))

        with pytest.raises(ValidationError):
            await scheduler.update(interview.interview_id, InterviewUpdate())

    @pytest.mark.asyncio
    async def test_update_unknown_interview(self, scheduler):
        with pytest.raises(NotFoundError):
            await scheduler.update("missing", InterviewUpdate(notes="x"))
        with pytest.raises(NotFoundError):
            await scheduler.get("missing")

    @pytest.mark.asyncio
    async def test_list_filters(self, scheduler, make_applicant):
        grace = await make_applicant("Grace Hopper")
        alan = await make_applicant("Alan Turing", minutes=5)
        later = await scheduler.schedule(booking(grace.applicant_id, scheduled_at=datetime(2024, 5, 9, 9, 0),
                                                 send_invitation=False))
        earlier = await scheduler.schedule(booking(grace.applicant_id, send_invitation=False))
        other = await scheduler.schedule(booking(alan.applicant_id, send_invitation=False))
        await scheduler.update(other.interview_id, InterviewUpdate(status=InterviewStatus.CANCELLED))

        mine = await scheduler.list(applicant_id=grace.applicant_id)
        cancelled = await scheduler.list(status="cancelled")

        assert [i.interview_id for i in mine] == [earlier.interview_id, later.interview_id]
        assert [i.interview_id for i in cancelled] == [other.interview_id]
