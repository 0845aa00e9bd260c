import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional, Tuple, Union

from recruitpro.models.response import EvaluationResult
from recruitpro.models.schemas import new_id
from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EvaluationRun:
    role_id: str
    sequence: int
    results: Tuple[EvaluationResult, ...]
    run_id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.utcnow)

    def find(self, applicant_id: str) -> Optional[EvaluationResult]:
        for r in self.results:
            if r.applicant_id == applicant_id:
                return r
        return None


@dataclass(frozen=True)
class EvaluationNotFound:
    """Returned (not raised) when there is no evaluation entry to delete."""
    applicant_id: str
    role_id: Optional[str] = None


class EvaluationStore:
    """
    Holds the visible evaluation run per role.

    Runs are immutable and replaced whole under one lock. A run only
    becomes visible if its sequence number is newer than the visible one,
    so a slow run that started earlier can never overwrite a later run.
    """

    def __init__(self):
        self._runs: Dict[str, EvaluationRun] = {}
        self._lock = asyncio.Lock()
        self._sequence = 0

    def next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def current(self, role_id: str) -> Optional[EvaluationRun]:
        return self._runs.get(role_id)

    async def publish(self, run: EvaluationRun) -> bool:
        async with self._lock:
            visible = self._runs.get(run.role_id)
            if visible is not None and visible.sequence >= run.sequence:
                logger.info(
                    f"Discarding stale evaluation run {run.run_id} for role {run.role_id}",
                    extra={"sequence": run.sequence, "visible_sequence": visible.sequence},
                )
                return False
            self._runs[run.role_id] = run
        logger.info(
            f"Published evaluation run {run.run_id} for role {run.role_id} ({len(run.results)} results)",
            extra={"sequence": run.sequence},
        )
        return True

    def _latest_containing(self, applicant_id: str) -> Optional[EvaluationRun]:
        runs = [r for r in self._runs.values() if r.find(applicant_id) is not None]
        return max(runs, key=lambda r: r.sequence, default=None)

    async def delete_result(self, applicant_id: str, role_id: str = None) -> Union[int, EvaluationNotFound]:
        """
        Remove one applicant from a visible run.

        The remaining entries keep the ranks they were given. Without a
        role id the most recent run containing the applicant is used.
        """
        async with self._lock:
            run = self._runs.get(role_id) if role_id else self._latest_containing(applicant_id)
            if run is None or run.find(applicant_id) is None:
                return EvaluationNotFound(applicant_id, role_id)

            remaining = tuple(r for r in run.results if r.applicant_id != applicant_id)
            self._runs[run.role_id] = replace(run, results=remaining)

        logger.info(
            f"Deleted evaluation entry {applicant_id} from role {run.role_id}",
            extra={"remaining": len(remaining)},
        )
        return len(remaining)

