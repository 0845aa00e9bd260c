"""
Process-wide service wiring for the routers.

Every getter is cached, so one orchestrator, one task runner and one
evaluation store exist per process. Tests replace them through
``app.dependency_overrides``.
"""
from functools import lru_cache

from recruitpro.services import db
from recruitpro.services.duplicate_guard import DuplicateGuard
from recruitpro.services.email import EmailSender
from recruitpro.services.evaluation import EvaluationEngine
from recruitpro.services.intake import IntakeOrchestrator
from recruitpro.services.interviews import InterviewScheduler
from recruitpro.services.matching import RoleMatcher
from recruitpro.services.notifications import NotificationDispatcher
from recruitpro.services.repositories import (
    ApplicantRepository,
    AssessmentRepository,
    InterviewRepository,
    NotificationRepository,
    RoleRepository,
)
from recruitpro.services.roles import RoleCatalog
from recruitpro.services.scoring import ScoringEngine
from recruitpro.services.tasks import BackgroundTaskRunner
from recruitpro.utils.config import get_settings


@lru_cache()
def get_applicant_repo() -> ApplicantRepository:
    return ApplicantRepository(db.applicants_coll)


@lru_cache()
def get_assessment_repo() -> AssessmentRepository:
    return AssessmentRepository(db.assessments_coll)


@lru_cache()
def get_notification_repo() -> NotificationRepository:
    return NotificationRepository(db.notifications_coll)


@lru_cache()
def get_role_catalog() -> RoleCatalog:
    return RoleCatalog(RoleRepository(db.roles_coll))


@lru_cache()
def get_task_runner() -> BackgroundTaskRunner:
    return BackgroundTaskRunner()


@lru_cache()
def get_notification_dispatcher() -> NotificationDispatcher:
    settings = get_settings()
    return NotificationDispatcher(
        EmailSender(settings.smtp),
        get_notification_repo(),
        company=settings.company_name,
    )


@lru_cache()
def get_orchestrator() -> IntakeOrchestrator:
    settings = get_settings()
    applicants = get_applicant_repo()
    return IntakeOrchestrator(
        applicants=applicants,
        assessments=get_assessment_repo(),
        guard=DuplicateGuard(applicants),
        scorer=ScoringEngine(settings),
        notifier=get_notification_dispatcher(),
        roles=get_role_catalog(),
        runner=get_task_runner(),
        settings=settings,
    )


@lru_cache()
def get_evaluation_engine() -> EvaluationEngine:
    scoring = get_settings().scoring
    matcher = RoleMatcher(
        use_embeddings=get_settings().embeddings.enabled,
        coverage_weight=scoring.coverage_weight,
        embedding_weight=scoring.embedding_weight,
    )
    return EvaluationEngine(
        applicants=get_applicant_repo(),
        assessments=get_assessment_repo(),
        roles=get_role_catalog(),
        matcher=matcher,
    )


@lru_cache()
def get_interview_repo() -> InterviewRepository:
    return InterviewRepository(db.interviews_coll)


@lru_cache()
def get_interview_scheduler() -> InterviewScheduler:
    return InterviewScheduler(
        applicants=get_applicant_repo(),
        interviews=get_interview_repo(),
        roles=get_role_catalog(),
        notifier=get_notification_dispatcher(),
    )
