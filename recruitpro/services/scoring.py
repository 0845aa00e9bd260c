import asyncio
import functools
import math
from typing import Any, Callable, Dict, List

import requests

from recruitpro.helpers.prompts import ASSESSMENT_PROMPT
from recruitpro.models.schemas import RoleProfile, ScoreCard
from recruitpro.models.settings import AppSettings
from recruitpro.utils.config import get_settings
from recruitpro.utils.exceptions import ScoringFailure
from recruitpro.utils.logging_config import get_logger
from recruitpro.utils.utils import clamp, ollama_generate, safe_json

logger = get_logger(__name__)

MAX_INSIGHT_CHARS = 300
MAX_RESUME_CHARS = 12000

# Accepted spellings per dimension; the model does not always follow the schema
SCORE_KEYS = {
    "overall": ("overall", "overallScore", "overall_score"),
    "skills": ("skills", "technicalSkills", "skills_match", "skillsMatch"),
    "experience": ("experience", "experienceMatch", "experience_match"),
    "education": ("education", "educationMatch", "education_match"),
}


def _number(data: Dict[str, Any], dimension: str) -> float:
    for key in SCORE_KEYS[dimension]:
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, bool):
            break
        try:
            number = float(value)
        except (TypeError, ValueError):
            break
        if math.isnan(number):
            break
        return clamp(number)
    raise ScoringFailure(f"Scoring failed: malformed model output (missing or non-numeric '{dimension}')")


def _insights(raw: Any) -> List[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    out = []
    for item in raw:
        text = str(item).strip()
        if text:
            out.append(text[:MAX_INSIGHT_CHARS])
    return out


def parse_scorecard(raw: str) -> ScoreCard:
    """Turn raw model output into a clamped ScoreCard or raise ScoringFailure."""
    data = safe_json(raw or "", fallback=None)
    if not isinstance(data, dict):
        raise ScoringFailure("Scoring failed: malformed model output (no JSON object)")

    return ScoreCard(
        overall=_number(data, "overall"),
        skills=_number(data, "skills"),
        experience=_number(data, "experience"),
        education=_number(data, "education"),
        insights=_insights(data.get("insights")),
    )


class ScoringEngine:
    """Remote resume scorer backed by the Ollama generate endpoint."""

    def __init__(self, settings: AppSettings = None, generate: Callable[..., str] = None):
        self.settings = settings or get_settings()
        self._generate = generate or ollama_generate

    def build_prompt(self, resume_text: str, role: RoleProfile) -> str:
        return ASSESSMENT_PROMPT.format(
            role_title=role.title,
            role_description=" ".join(filter(None, [role.description, role.requirements])) or role.title,
            role_skills=", ".join(role.skills) or "Not specified",
            insight_count=self.settings.scoring.insight_target,
            resume=resume_text[:MAX_RESUME_CHARS],
        )

    async def score(self, resume_text: str, role: RoleProfile) -> ScoreCard:
        timeout = self.settings.llm.timeout
        model = self.settings.llm.model_name
        logger.info(
            f"Starting AI resume analysis for role {role.role_id}",
            extra={"role_id": role.role_id, "text_length": len(resume_text)},
        )

        loop = asyncio.get_running_loop()
        call = functools.partial(self._generate, self.build_prompt(resume_text, role))
        try:
            raw = await asyncio.wait_for(loop.run_in_executor(None, call), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ScoringFailure(f"Scoring timed out after {timeout:.0f}s", model_name=model, cause=e)
        except requests.RequestException as e:
            raise ScoringFailure(f"Scoring service unavailable: {e}", model_name=model, cause=e)

        card = parse_scorecard(raw)
        logger.info(
            f"AI analysis completed for role {role.role_id}: overall={card.overall:.1f}",
            extra={"role_id": role.role_id, "insights": len(card.insights)},
        )
        return card
