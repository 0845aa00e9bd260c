import os
from functools import lru_cache

from dotenv import load_dotenv

from recruitpro.models.settings import (
    AppSettings,
    EmbeddingSettings,
    LLMSettings,
    ScoringSettings,
    SmtpSettings,
)

load_dotenv()

FALSY = ("0", "false", "no", "off")


def _flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() not in FALSY


def load_settings() -> AppSettings:
    """Build settings from the environment (and .env)."""
    smtp_user = os.getenv("SMTP_USER", "")
    return AppSettings(
        environment=os.getenv("ENVIRONMENT", "development").lower(),
        mongo_details=os.getenv("MONGO_DETAILS", "mongodb://localhost:27017"),
        db_name=os.getenv("DB_NAME", "recruitpro_db"),
        company_name=os.getenv("COMPANY_NAME", "RecruitPro"),
        shutdown_drain_timeout=float(os.getenv("SHUTDOWN_DRAIN_TIMEOUT", "10")),
        log_level=os.getenv("LOG_LEVEL"),
        llm=LLMSettings(
            model_name=os.getenv("LLM_MODEL", "llava:7b"),
            base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.3")),
            timeout=float(os.getenv("SCORING_TIMEOUT", "60")),
            retry_attempts=int(os.getenv("LLM_RETRY_ATTEMPTS", "2")),
        ),
        embeddings=EmbeddingSettings(
            model_name=os.getenv("EMBED_MODEL", "nomic-embed-text"),
            enabled=_flag("USE_EMBEDDINGS"),
        ),
        scoring=ScoringSettings(
            min_resume_chars=int(os.getenv("MIN_RESUME_CHARS", "50")),
            insight_target=int(os.getenv("INSIGHT_TARGET", "4")),
        ),
        smtp=SmtpSettings(
            host=os.getenv("SMTP_HOST", ""),
            port=int(os.getenv("SMTP_PORT", "587")),
            user=smtp_user,
            password=os.getenv("SMTP_PASS", ""),
            mail_from=os.getenv("SMTP_FROM", smtp_user),
            use_tls=_flag("SMTP_USE_TLS"),
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()
