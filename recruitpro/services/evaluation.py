"""
Evaluation runs: rank a role's applicants by fit score.

A run is a small LangGraph pipeline (load -> score -> rank -> publish).
The finished run is swapped into the EvaluationStore whole; a rank is
fixed when the run is built and never recomputed when entries are
deleted afterwards.
"""
import asyncio
from typing import Dict, List, Optional, TypedDict, Union

from langgraph.graph import END, StateGraph

from recruitpro.models.response import EvaluationResult
from recruitpro.models.schemas import (
    ApplicantModel,
    AssessmentModel,
    Confidence,
    RoleProfile,
)
from recruitpro.services.evaluation_store import (
    EvaluationNotFound,
    EvaluationRun,
    EvaluationStore,
)
from recruitpro.services.matching import RoleMatcher
from recruitpro.services.repositories import ApplicantRepository, AssessmentRepository
from recruitpro.services.roles import RoleCatalog
from recruitpro.utils.exceptions import ValidationError
from recruitpro.utils.logging_config import PerformanceMonitor, get_logger
from recruitpro.utils.utils import clamp

logger = get_logger(__name__)


class EvaluationState(TypedDict, total=False):
    role_id: str
    applicant_ids: Optional[List[str]]
    sequence: int
    role: RoleProfile
    applicants: List[ApplicantModel]
    assessments: Dict[str, AssessmentModel]
    scored: List[EvaluationResult]
    run: EvaluationRun
    published: bool


def recommendation_for(applicant: ApplicantModel, role: RoleProfile, assessment: Optional[AssessmentModel]) -> str:
    if assessment is None or not assessment.usable:
        return (
            f"{applicant.full_name} requires assessment completion for accurate evaluation. "
            "Please run individual assessment first."
        )
    overall = assessment.overall
    potential = "strong" if overall >= 70 else "moderate" if overall >= 50 else "limited"
    return f"Based on assessment scores, this candidate shows {potential} potential for the {role.title} role."


def rank_results(results: List[EvaluationResult]) -> List[EvaluationResult]:
    """Sort by fit (desc), then earliest application, then id; ranks start at 1."""
    ordered = sorted(results, key=lambda r: (-r.fit_score, r.applied_at, r.applicant_id))
    return [r.model_copy(update={"rank": i}) for i, r in enumerate(ordered, start=1)]


class EvaluationEngine:
    """
    Builds and owns evaluation runs.

    The engine is the only writer of its EvaluationStore. Runs for the
    same role may overlap; the one that started last wins.
    """

    def __init__(
        self,
        applicants: ApplicantRepository,
        assessments: AssessmentRepository,
        roles: RoleCatalog,
        matcher: RoleMatcher,
        store: EvaluationStore = None,
    ):
        self._applicants = applicants
        self._assessments = assessments
        self._roles = roles
        self._matcher = matcher
        self.store = store or EvaluationStore()
        self._graph = self._build_graph()

    def _build_graph(self):
        g = StateGraph(EvaluationState)
        g.add_node("load", self._node_load)
        g.add_node("score", self._node_score)
        g.add_node("rank", self._node_rank)
        g.add_node("publish", self._node_publish)
        g.set_entry_point("load")
        g.add_edge("load", "score")
        g.add_edge("score", "rank")
        g.add_edge("rank", "publish")
        g.add_edge("publish", END)
        return g.compile()

    # LangGraph nodes return state deltas

    async def _node_load(self, state: EvaluationState):
        role_id = state["role_id"]
        ids = state.get("applicant_ids")
        if ids is not None:
            wanted = list(dict.fromkeys(ids))
            applicants = await self._applicants.get_many(wanted)
            unknown = set(wanted) - {a.applicant_id for a in applicants}
            if unknown:
                raise ValidationError(
                    f"Unknown applicant ids: {', '.join(sorted(unknown))}",
                    field="applicant_ids",
                    value=sorted(unknown),
                )
        else:
            applicants = await self._applicants.list_by_role(role_id)

        if not applicants:
            raise ValidationError(f"No applicants to evaluate for role '{role_id}'", field="role_id", value=role_id)

        return {
            "sequence": self.store.next_sequence(),
            "role": await self._roles.get(role_id),
            "applicants": applicants,
            "assessments": await self._assessments.get_for_applicants(a.applicant_id for a in applicants),
        }

    async def _node_score(self, state: EvaluationState):
        role = state["role"]
        assessments = state["assessments"]
        loop = asyncio.get_running_loop()

        async def score_one(applicant: ApplicantModel) -> EvaluationResult:
            # matcher may call the embedding service (blocking I/O)
            role_match, matching, missing = await loop.run_in_executor(
                None, self._matcher.match, applicant.resume_text, role
            )
            assessment = assessments.get(applicant.applicant_id)
            if assessment is not None and assessment.usable:
                fit = clamp((assessment.overall + role_match) / 2)
                confidence = Confidence.HIGH
                assessment_score = assessment.overall
            else:
                fit = role_match
                confidence = Confidence.LOW
                assessment_score = None
            return EvaluationResult(
                applicant_id=applicant.applicant_id,
                full_name=applicant.full_name,
                role_id=role.role_id,
                fit_score=round(fit, 2),
                assessment_score=assessment_score,
                role_match=role_match,
                matching_skills=matching,
                missing_skills=missing,
                confidence=confidence,
                recommendation=recommendation_for(applicant, role, assessment),
                applied_at=applicant.created_at,
            )

        scored = await asyncio.gather(*(score_one(a) for a in state["applicants"]))
        return {"scored": list(scored)}

    async def _node_rank(self, state: EvaluationState):
        ranked = rank_results(state["scored"])
        run = EvaluationRun(role_id=state["role_id"], sequence=state["sequence"], results=tuple(ranked))
        return {"run": run}

    async def _node_publish(self, state: EvaluationState):
        return {"published": await self.store.publish(state["run"])}

    async def evaluate(self, role_id: str, applicant_ids: List[str] = None) -> EvaluationRun:
        """
        Run one evaluation and return it.

        The returned run may not be the visible one if a newer run for the
        same role was published while this one was in flight.
        """
        with PerformanceMonitor(f"evaluation run for {role_id}", logger):
            final = await self._graph.ainvoke({"role_id": role_id, "applicant_ids": applicant_ids})
        return final["run"]

    def current(self, role_id: str) -> Optional[EvaluationRun]:
        return self.store.current(role_id)

    async def delete_result(self, applicant_id: str, role_id: str = None) -> Union[int, EvaluationNotFound]:
        return await self.store.delete_result(applicant_id, role_id)
