from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from recruitpro.models.schemas import (
    ApplicantModel,
    AssessmentModel,
    AssessmentStatus,
    Confidence,
    DeliveryOutcome,
)


class ApplicationReceipt(BaseModel):
    application_id: str
    message: str = "Application submitted successfully! You will receive a confirmation email shortly."


class ErrorResponse(BaseModel):
    """Body of every error answer, see middleware.error_handlers"""
    success: bool = False
    kind: str
    message: str
    request_id: str
    status_code: int
    timestamp: datetime


class AssessmentView(BaseModel):
    applicant_id: str
    status: AssessmentStatus
    overall: Optional[float] = None
    skills: Optional[float] = None
    experience: Optional[float] = None
    education: Optional[float] = None
    insights: List[str] = Field(default_factory=list)
    insufficient_data: bool = False
    processed_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, assessment: AssessmentModel) -> "AssessmentView":
        return cls(**assessment.model_dump(include=set(cls.model_fields)))


class NotificationLogEntry(BaseModel):
    subject: str
    outcome: DeliveryOutcome
    timestamp: datetime
    template: Optional[str] = None
    error: Optional[str] = None


class ApplicantDetail(BaseModel):
    applicant: ApplicantModel
    assessment: Optional[AssessmentView] = None
    notifications: List[NotificationLogEntry] = Field(default_factory=list)


class EvaluationResult(BaseModel):
    applicant_id: str
    full_name: str
    role_id: str
    fit_score: float
    assessment_score: Optional[float] = None
    role_match: float
    matching_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    confidence: Confidence
    recommendation: str
    applied_at: datetime
    rank: int = 0  # set once when the run is ranked


class EvaluationRunResponse(BaseModel):
    run_id: str
    role_id: str
    created_at: datetime
    count: int
    results: List[EvaluationResult]


class DeletionResponse(BaseModel):
    applicant_id: str
    remaining_count: int
    message: str = "Evaluation deleted successfully"


class SweepResponse(BaseModel):
    scheduled: int
    message: str
