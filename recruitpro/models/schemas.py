from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum
import uuid


def new_id() -> str:
    return str(uuid.uuid4())


class ApplicantStatus(str, Enum):
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    INTERVIEWING = "interviewing"
    HIRED = "hired"
    REJECTED = "rejected"


class AssessmentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DeliveryOutcome(str, Enum):
    SENT = "sent"
    FAILED = "failed"


class Confidence(str, Enum):
    HIGH = "high"
    LOW = "low"


# -------- Applicants --------
class ApplicantModel(BaseModel):
    applicant_id: str = Field(default_factory=new_id)
    full_name: str
    email: str  # normalized, see utils.normalize_email
    phone: str
    profile_url: Optional[str] = None
    role_id: str
    resume_filename: Optional[str] = None
    resume_text: Optional[str] = None  # None when no document or extraction failed
    status: ApplicantStatus = ApplicantStatus.SUBMITTED
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# -------- Assessments --------
class AssessmentModel(BaseModel):
    assessment_id: str = Field(default_factory=new_id)
    applicant_id: str
    overall: Optional[float] = None
    skills: Optional[float] = None
    experience: Optional[float] = None
    education: Optional[float] = None
    insights: List[str] = Field(default_factory=list)
    status: AssessmentStatus = AssessmentStatus.PENDING
    insufficient_data: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    processed_at: Optional[datetime] = None

    @property
    def usable(self) -> bool:
        """Completed with real scores."""
        return (
            self.status == AssessmentStatus.COMPLETED
            and not self.insufficient_data
            and self.overall is not None
        )


class ScoreCard(BaseModel):
    """Clamped output of one scoring call"""
    overall: float = Field(ge=0, le=100)
    skills: float = Field(ge=0, le=100)
    experience: float = Field(ge=0, le=100)
    education: float = Field(ge=0, le=100)
    insights: List[str] = Field(default_factory=list)


# -------- Notifications --------
class NotificationRecord(BaseModel):
    notification_id: str = Field(default_factory=new_id)
    applicant_id: Optional[str] = None
    recipient: str
    template: str
    subject: str
    body: str
    outcome: DeliveryOutcome
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


# -------- Roles --------
class RoleProfile(BaseModel):
    role_id: str
    title: str
    description: str = ""
    requirements: str = ""
    skills: List[str] = Field(default_factory=list)
    experience_level: str = "Mid-level"


# -------- Interviews --------
class InterviewStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InterviewModel(BaseModel):
    interview_id: str = Field(default_factory=new_id)
    applicant_id: str
    scheduled_at: datetime
    interview_type: str = "video"
    duration_minutes: int = 60
    interviewer_name: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: InterviewStatus = InterviewStatus.SCHEDULED
    invitation_outcome: Optional[DeliveryOutcome] = None  # None when no invitation was sent
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
