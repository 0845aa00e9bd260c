from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from recruitpro.models.schemas import ApplicantStatus, InterviewStatus

# Input schemas for the HTTP boundary


class ApplicationRequest(BaseModel):
    """Candidate application as submitted by the public form"""
    full_name: str
    email: str
    phone: str
    role_id: str
    profile_url: Optional[str] = None
    resume_filename: Optional[str] = None
    resume_base64: Optional[str] = None  # document bytes, base64 encoded


class StatusUpdate(BaseModel):
    status: ApplicantStatus


class EvaluationRequest(BaseModel):
    """Trigger an evaluation run for one role"""
    role_id: str
    applicant_ids: Optional[List[str]] = None


class NotificationRequest(BaseModel):
    """Staff-initiated email to an applicant"""
    template: Literal["interview_invitation", "rejection", "custom"] = "custom"
    context: Dict[str, Any] = Field(default_factory=dict)


class RoleUpsert(BaseModel):
    title: str
    description: str = ""
    requirements: str = ""
    skills: List[str] = Field(default_factory=list)
    experience_level: str = "Mid-level"


class InterviewRequest(BaseModel):
    """Schedule an interview; the invitation email goes out unless disabled"""
    applicant_id: str
    scheduled_at: datetime
    interview_type: Literal["video", "phone", "onsite"] = "video"
    duration_minutes: int = Field(60, ge=15, le=480)
    interviewer_name: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    send_invitation: bool = True


class InterviewUpdate(BaseModel):
    scheduled_at: Optional[datetime] = None
    interview_type: Optional[Literal["video", "phone", "onsite"]] = None
    duration_minutes: Optional[int] = Field(None, ge=15, le=480)
    interviewer_name: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[InterviewStatus] = None
