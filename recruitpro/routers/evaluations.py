from typing import Optional

import pandas as pd
from fastapi import APIRouter, Depends, Response

from recruitpro.dependencies import get_evaluation_engine
from recruitpro.models.requests import EvaluationRequest
from recruitpro.models.response import DeletionResponse, EvaluationRunResponse
from recruitpro.services.evaluation import EvaluationEngine
from recruitpro.services.evaluation_store import EvaluationNotFound, EvaluationRun
from recruitpro.utils.exceptions import NotFoundError
from recruitpro.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)

EXPORT_COLUMNS = [
    "rank", "applicant_id", "full_name", "fit_score", "assessment_score", "role_match",
    "confidence", "matching_skills", "missing_skills", "recommendation", "applied_at",
]


def _to_response(run: EvaluationRun) -> EvaluationRunResponse:
    return EvaluationRunResponse(
        run_id=run.run_id,
        role_id=run.role_id,
        created_at=run.created_at,
        count=len(run.results),
        results=list(run.results),
    )


def _current_or_404(engine: EvaluationEngine, role_id: str) -> EvaluationRun:
    run = engine.current(role_id)
    if run is None:
        raise NotFoundError(
            f"No evaluation has been run for role '{role_id}'",
            resource="evaluation",
            resource_id=role_id,
        )
    return run


@router.post("/run", response_model=EvaluationRunResponse)
@log_api_call("run_evaluation")
async def run_evaluation(
    payload: EvaluationRequest,
    engine: EvaluationEngine = Depends(get_evaluation_engine),
):
    run = await engine.evaluate(payload.role_id, payload.applicant_ids)
    return _to_response(run)


@router.get("", response_model=EvaluationRunResponse)
async def get_evaluations(role_id: str, engine: EvaluationEngine = Depends(get_evaluation_engine)):
    return _to_response(_current_or_404(engine, role_id))


@router.get("/export")
@log_api_call("export_evaluations")
async def export_evaluations(role_id: str, engine: EvaluationEngine = Depends(get_evaluation_engine)):
    run = _current_or_404(engine, role_id)
    df = pd.DataFrame([r.model_dump(mode="json") for r in run.results], columns=EXPORT_COLUMNS)
    for col in ("matching_skills", "missing_skills"):
        df[col] = df[col].apply(lambda v: "; ".join(v) if isinstance(v, list) else v)
    return Response(
        content=df.to_csv(index=False),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="evaluation_{role_id}.csv"'},
    )


@router.delete("/{applicant_id}", response_model=DeletionResponse)
@log_api_call("delete_evaluation")
async def delete_evaluation(
    applicant_id: str,
    role_id: Optional[str] = None,
    engine: EvaluationEngine = Depends(get_evaluation_engine),
):
    remaining = await engine.delete_result(applicant_id, role_id)
    if isinstance(remaining, EvaluationNotFound):
        raise NotFoundError("Evaluation not found", resource="evaluation", resource_id=applicant_id)
    return DeletionResponse(applicant_id=applicant_id, remaining_count=remaining)
