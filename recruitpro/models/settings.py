"""
Settings Models for Service Configuration
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class LLMSettings(BaseModel):
    """LLM Configuration Settings"""
    model_name: str = Field(default="llava:7b", description="LLM model name")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="Generation temperature")
    timeout: float = Field(default=60.0, gt=0, le=600, description="Scoring timeout in seconds")
    retry_attempts: int = Field(default=2, ge=1, le=10, description="Attempts per scoring request")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


class EmbeddingSettings(BaseModel):
    """Embedding Model Configuration"""
    model_name: str = Field(default="nomic-embed-text", description="Embedding model name")
    enabled: bool = Field(default=True, description="Blend embedding similarity into role matching")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")


class ScoringSettings(BaseModel):
    """Assessment and evaluation tuning"""
    min_resume_chars: int = Field(default=50, ge=1, description="Shortest extracted text treated as usable")
    insight_target: int = Field(default=4, ge=1, le=10, description="Number of insights requested from the model")
    coverage_weight: float = Field(default=0.6, ge=0.0, le=1.0, description="Skill coverage share of role match")
    embedding_weight: float = Field(default=0.4, ge=0.0, le=1.0, description="Embedding similarity share of role match")

    @field_validator("embedding_weight")
    @classmethod
    def validate_total_weights(cls, v, info):
        total = v + info.data.get("coverage_weight", 0)
        if abs(total - 1.0) > 0.01:
            raise ValueError("Role match weights must sum to 1.0")
        return v


class SmtpSettings(BaseModel):
    """Outgoing mail configuration"""
    host: str = ""
    port: int = Field(default=587, ge=1, le=65535)
    user: str = ""
    password: str = ""
    mail_from: str = ""
    use_tls: bool = True
    timeout: int = Field(default=30, ge=1, le=300)

    @property
    def configured(self) -> bool:
        return bool(self.host and self.mail_from)


class AppSettings(BaseModel):
    """Complete service settings"""
    environment: str = "development"
    mongo_details: str = "mongodb://localhost:27017"
    db_name: str = "recruitpro_db"
    company_name: str = "RecruitPro"
    shutdown_drain_timeout: float = Field(default=10.0, ge=0.0)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embeddings: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    smtp: SmtpSettings = Field(default_factory=SmtpSettings)
    log_level: Optional[str] = None
