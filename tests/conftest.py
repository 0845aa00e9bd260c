import os

# Must be set before recruitpro reads its settings
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("USE_EMBEDDINGS", "0")
os.environ.setdefault("SMTP_HOST", "")

import json
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

import pytest

from recruitpro.models.schemas import (
    ApplicantModel,
    ApplicantStatus,
    AssessmentModel,
    AssessmentStatus,
    InterviewModel,
    NotificationRecord,
    RoleProfile,
)
from recruitpro.services.duplicate_guard import DuplicateGuard
from recruitpro.services.evaluation import EvaluationEngine
from recruitpro.services.intake import IntakeOrchestrator
from recruitpro.services.interviews import InterviewScheduler
from recruitpro.services.matching import RoleMatcher
from recruitpro.services.notifications import NotificationDispatcher
from recruitpro.services.roles import RoleCatalog
from recruitpro.services.scoring import ScoringEngine
from recruitpro.services.tasks import BackgroundTaskRunner
from recruitpro.utils.config import get_settings
from recruitpro.utils.exceptions import DuplicateApplication

RESUME_TEXT = (
    "Senior backend engineer with eight years of experience building REST and GraphQL APIs "
    "in Python and Node.js. Designed PostgreSQL and MongoDB schemas, shipped services on AWS "
    "with Docker, and maintained CI pipelines in Git. "
)


# ---------------------------------------------------------------------------
# In-memory doubles for the Mongo repositories
# ---------------------------------------------------------------------------

class InMemoryApplicants:
    def __init__(self):
        self.rows: Dict[str, ApplicantModel] = {}

    async def find_by_email_and_role(self, email, role_id):
        for a in self.rows.values():
            if a.email == email and a.role_id == role_id:
                return a.model_copy()
        return None

    async def create(self, applicant):
        # same guarantee as the unique (email, role_id) index
        if await self.find_by_email_and_role(applicant.email, applicant.role_id):
            raise DuplicateApplication(applicant.email, applicant.role_id)
        self.rows[applicant.applicant_id] = applicant.model_copy()
        return applicant

    async def get(self, applicant_id):
        a = self.rows.get(applicant_id)
        return a.model_copy() if a else None

    async def get_many(self, applicant_ids: Iterable[str]):
        return [self.rows[i].model_copy() for i in applicant_ids if i in self.rows]

    async def list_by_role(self, role_id):
        return sorted((a for a in self.rows.values() if a.role_id == role_id), key=lambda a: a.created_at)

    async def list(self, search=None, role_id=None, status=None, limit=None, offset=0):
        rows = sorted(self.rows.values(), key=lambda a: a.created_at, reverse=True)
        if role_id:
            rows = [a for a in rows if a.role_id == role_id]
        if status:
            rows = [a for a in rows if a.status.value == status]
        if search:
            s = search.lower()
            rows = [a for a in rows if s in a.full_name.lower() or s in a.email or s in a.role_id.lower()]
        rows = rows[offset:]
        return rows[:limit] if limit else rows

    async def list_with_resume_text(self):
        return [a for a in self.rows.values() if a.resume_text is not None]

    async def update_status(self, applicant_id, status):
        a = self.rows.get(applicant_id)
        if a is None:
            return None
        self.rows[applicant_id] = a.model_copy(update={"status": ApplicantStatus(status), "updated_at": datetime.utcnow()})
        return self.rows[applicant_id]

    async def delete(self, applicant_id):
        return self.rows.pop(applicant_id, None) is not None


class InMemoryAssessments:
    def __init__(self):
        self.rows: Dict[str, AssessmentModel] = {}

    async def create(self, assessment):
        self.rows[assessment.applicant_id] = assessment.model_copy()
        return assessment

    async def get_by_applicant(self, applicant_id):
        a = self.rows.get(applicant_id)
        return a.model_copy() if a else None

    async def get_for_applicants(self, applicant_ids):
        return {i: self.rows[i].model_copy() for i in applicant_ids if i in self.rows}

    async def finalize(self, applicant_id, update: Dict[str, Any]):
        current = self.rows.get(applicant_id)
        if current is None or current.status != AssessmentStatus.PENDING:
            return False
        update = {"processed_at": datetime.utcnow(), **update}
        self.rows[applicant_id] = current.model_copy(update=update)
        return True

    async def list(self, status=None):
        return [a for a in self.rows.values() if status is None or a.status.value == status]

    async def delete_by_applicant(self, applicant_id):
        return 1 if self.rows.pop(applicant_id, None) else 0


class InMemoryNotifications:
    def __init__(self):
        self.rows: List[NotificationRecord] = []

    async def add(self, record):
        self.rows.append(record)
        return record

    async def list_for_applicant(self, applicant_id):
        return sorted((r for r in self.rows if r.applicant_id == applicant_id), key=lambda r: r.created_at)

    async def delete_by_applicant(self, applicant_id):
        before = len(self.rows)
        self.rows = [r for r in self.rows if r.applicant_id != applicant_id]
        return before - len(self.rows)


class InMemoryRoles:
    def __init__(self):
        self.rows: Dict[str, RoleProfile] = {}

    async def get(self, role_id):
        return self.rows.get(role_id)

    async def list(self):
        return list(self.rows.values())

    async def upsert(self, role):
        self.rows[role.role_id] = role
        return role


class InMemoryInterviews:
    def __init__(self):
        self.rows: Dict[str, InterviewModel] = {}

    async def create(self, interview):
        self.rows[interview.interview_id] = interview.model_copy()
        return interview

    async def get(self, interview_id):
        i = self.rows.get(interview_id)
        return i.model_copy() if i else None

    async def list(self, applicant_id=None, status=None):
        rows = sorted(self.rows.values(), key=lambda i: i.scheduled_at)
        if applicant_id:
            rows = [i for i in rows if i.applicant_id == applicant_id]
        if status:
            rows = [i for i in rows if i.status.value == status]
        return rows

    async def update(self, interview_id, changes):
        current = self.rows.get(interview_id)
        if current is None:
            return None
        self.rows[interview_id] = current.model_copy(update={**changes, "updated_at": datetime.utcnow()})
        return self.rows[interview_id]

    async def delete_by_applicant(self, applicant_id):
        doomed = [k for k, i in self.rows.items() if i.applicant_id == applicant_id]
        for k in doomed:
            del self.rows[k]
        return len(doomed)


# ---------------------------------------------------------------------------
# External service doubles
# ---------------------------------------------------------------------------

class FakeGenerate:
    """Stands in for ollama_generate; records every prompt"""

    def __init__(self, response: Optional[dict] = None, error: Exception = None):
        self.calls: List[str] = []
        self.response = response or {
            "overall": 82,
            "skills": 88,
            "experience": 79,
            "education": 70,
            "insights": ["Strong API design", "Solid cloud background", "Good database skills", "Clear CV"],
        }
        self.error = error

    def __call__(self, prompt: str, **kwargs) -> str:
        self.calls.append(prompt)
        if self.error:
            raise self.error
        return json.dumps(self.response)


class FakeSender:
    def __init__(self, error: Exception = None):
        self.sent: List[tuple] = []
        self.error = error

    async def send(self, to_email: str, subject: str, body: str) -> None:
        if self.error:
            raise self.error
        self.sent.append((to_email, subject, body))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def applicants():
    return InMemoryApplicants()


@pytest.fixture
def assessments():
    return InMemoryAssessments()


@pytest.fixture
def notification_records():
    return InMemoryNotifications()


@pytest.fixture
def catalog():
    return RoleCatalog(InMemoryRoles())


@pytest.fixture
def generate():
    return FakeGenerate()


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def runner():
    return BackgroundTaskRunner()


@pytest.fixture
def dispatcher(sender, notification_records):
    return NotificationDispatcher(sender, notification_records, company="RecruitPro")


@pytest.fixture
def orchestrator(applicants, assessments, generate, dispatcher, catalog, runner, settings):
    return IntakeOrchestrator(
        applicants=applicants,
        assessments=assessments,
        guard=DuplicateGuard(applicants),
        scorer=ScoringEngine(settings, generate=generate),
        notifier=dispatcher,
        roles=catalog,
        runner=runner,
        settings=settings,
    )


@pytest.fixture
def engine(applicants, assessments, catalog):
    return EvaluationEngine(
        applicants=applicants,
        assessments=assessments,
        roles=catalog,
        matcher=RoleMatcher(use_embeddings=False),
    )


@pytest.fixture
def make_applicant(applicants, assessments):
    """Insert an applicant (and optionally a completed assessment) directly."""
    base = datetime(2024, 5, 1, 9, 0, 0)

    async def _make(name, role_id="backend-developer", minutes=0, resume_text=RESUME_TEXT, overall=None):
        applicant = ApplicantModel(
            full_name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            phone="+1 555 0100",
            role_id=role_id,
            resume_text=resume_text,
            created_at=base + timedelta(minutes=minutes),
        )
        await applicants.create(applicant)
        if overall is not None:
            await assessments.create(AssessmentModel(
                applicant_id=applicant.applicant_id,
                overall=overall,
                skills=overall,
                experience=overall,
                education=overall,
                status=AssessmentStatus.COMPLETED,
                processed_at=datetime.utcnow(),
            ))
        return applicant

    return _make


@pytest.fixture
def interview_records():
    return InMemoryInterviews()


@pytest.fixture
def scheduler(applicants, interview_records, catalog, dispatcher):
    return InterviewScheduler(
        applicants=applicants,
        interviews=interview_records,
        roles=catalog,
        notifier=dispatcher,
    )
