import re
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from recruitpro.models.schemas import RoleProfile
from recruitpro.utils.logging_config import get_logger
from recruitpro.utils.utils import clamp, ollama_embed

logger = get_logger(__name__)

MAX_EMBED_CHARS = 4000


def skill_in_text(skill: str, text: str) -> bool:
    # word boundaries that still work for "c++", "node.js", "ci/cd"
    pattern = r"(?<![\w+#.])" + re.escape(skill.lower()) + r"(?![\w+#])"
    return re.search(pattern, text) is not None


def split_skills(skills: List[str], resume_text: Optional[str]) -> Tuple[List[str], List[str]]:
    """Partition the role's skills into (found in resume, missing from resume)."""
    text = (resume_text or "").lower()
    matching, missing = [], []
    for s in skills:
        (matching if text and skill_in_text(s, text) else missing).append(s)
    return matching, missing


def weighted_skill_coverage(role_skills: List[str], found: List[str], weights: Dict[str, float] = None) -> float:
    weights = weights or {}
    role_set = set([s.lower() for s in role_skills])
    found_set = set([s.lower() for s in found])
    if not role_set:
        return 0.0
    score = 0.0
    total = 0.0
    for s in role_set:
        w = 1.0 + weights.get(s, 0.0)
        total += w
        if s in found_set:
            score += w
    return score / total if total > 0 else 0.0


def cosine(va: np.ndarray, vb: np.ndarray) -> float:
    num = float(np.dot(va, vb))
    den = float(np.linalg.norm(va) * np.linalg.norm(vb)) or 1e-8
    return max(0.0, min(1.0, num / den))


def embed_similarity(a: str, b: str, embed: Callable[[str], np.ndarray] = ollama_embed) -> float:
    return cosine(embed(a[:MAX_EMBED_CHARS]), embed(b[:MAX_EMBED_CHARS]))


def role_text(role: RoleProfile) -> str:
    return "\n".join(filter(None, [role.title, role.description, role.requirements, ", ".join(role.skills)]))


class RoleMatcher:
    """
    Scores how well a resume matches a role, on a 0-100 scale.

    Skill coverage weighs the first few listed skills a little higher. When
    embeddings are enabled, coverage is blended with the cosine similarity
    of the resume and role embeddings; if the embedding call fails the
    coverage score is used alone.
    """

    def __init__(
        self,
        use_embeddings: bool = True,
        coverage_weight: float = 0.6,
        embedding_weight: float = 0.4,
        embed: Callable[[str], np.ndarray] = None,
    ):
        self.use_embeddings = use_embeddings
        self.coverage_weight = coverage_weight
        self.embedding_weight = embedding_weight
        self._embed = embed or ollama_embed

    def match(self, resume_text: Optional[str], role: RoleProfile) -> Tuple[float, List[str], List[str]]:
        """Returns (role_match, matching_skills, missing_skills)."""
        matching, missing = split_skills(role.skills, resume_text)
        if not resume_text:
            return 0.0, matching, missing

        weights = {s.lower(): 0.5 for s in role.skills[:5]}
        coverage = weighted_skill_coverage(role.skills, matching, weights)
        score = coverage
        if self.use_embeddings:
            try:
                sim = embed_similarity(resume_text, role_text(role), self._embed)
                score = self.coverage_weight * coverage + self.embedding_weight * sim
            except Exception as e:
                logger.warning(
                    f"Embedding similarity unavailable, using skill coverage only: {e}",
                    extra={"role_id": role.role_id},
                )
        return round(clamp(score * 100.0), 2), matching, missing
