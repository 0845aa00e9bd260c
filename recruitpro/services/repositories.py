"""
Repositories over the MongoDB collections.

Each repository converts between pydantic models and Mongo documents and
wraps driver errors into DatabaseError. The orchestrator and the
evaluation engine only ever talk to these classes, never to collections.
"""
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from recruitpro.models.schemas import (
    ApplicantModel,
    AssessmentModel,
    AssessmentStatus,
    InterviewModel,
    NotificationRecord,
    RoleProfile,
)
from recruitpro.utils.exceptions import DuplicateApplication, ExceptionContext
from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)


def to_document(model) -> Dict[str, Any]:
    doc = model.model_dump()
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in doc.items()}


class BaseRepository:
    collection_name = ""

    def __init__(self, collection):
        self._coll = collection

    def _context(self, operation: str, **context) -> ExceptionContext:
        return ExceptionContext(operation, logger, collection=self.collection_name, **context)


class ApplicantRepository(BaseRepository):
    collection_name = "applicants"

    async def find_by_email_and_role(self, email: str, role_id: str) -> Optional[ApplicantModel]:
        with self._context("find_by_email_and_role", role_id=role_id):
            doc = await self._coll.find_one({"email": email, "role_id": role_id})
        return ApplicantModel(**doc) if doc else None

    async def create(self, applicant: ApplicantModel) -> ApplicantModel:
        with self._context("create_applicant", applicant_id=applicant.applicant_id):
            try:
                await self._coll.insert_one(to_document(applicant))
            except DuplicateKeyError as e:
                # A concurrent request won the race past the duplicate guard
                raise DuplicateApplication(applicant.email, applicant.role_id, cause=e) from e
        return applicant

    async def get(self, applicant_id: str) -> Optional[ApplicantModel]:
        with self._context("get_applicant", applicant_id=applicant_id):
            doc = await self._coll.find_one({"applicant_id": applicant_id})
        return ApplicantModel(**doc) if doc else None

    async def get_many(self, applicant_ids: Iterable[str]) -> List[ApplicantModel]:
        with self._context("get_many_applicants"):
            cursor = self._coll.find({"applicant_id": {"$in": list(applicant_ids)}})
            docs = await cursor.to_list(length=None)
        return [ApplicantModel(**d) for d in docs]

    async def list_by_role(self, role_id: str) -> List[ApplicantModel]:
        with self._context("list_by_role", role_id=role_id):
            cursor = self._coll.find({"role_id": role_id}).sort("created_at", ASCENDING)
            docs = await cursor.to_list(length=None)
        return [ApplicantModel(**d) for d in docs]

    async def list(
        self,
        search: Optional[str] = None,
        role_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[ApplicantModel]:
        query: Dict[str, Any] = {}
        if role_id:
            query["role_id"] = role_id
        if status:
            query["status"] = status
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"full_name": pattern}, {"email": pattern}, {"role_id": pattern}]

        with self._context("list_applicants"):
            cursor = self._coll.find(query).sort("created_at", DESCENDING).skip(offset)
            if limit:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list(length=None)
        return [ApplicantModel(**d) for d in docs]

    async def list_with_resume_text(self) -> List[ApplicantModel]:
        with self._context("list_with_resume_text"):
            cursor = self._coll.find({"resume_text": {"$ne": None}})
            docs = await cursor.to_list(length=None)
        return [ApplicantModel(**d) for d in docs]

    async def update_status(self, applicant_id: str, status: str) -> Optional[ApplicantModel]:
        with self._context("update_status", applicant_id=applicant_id):
            doc = await self._coll.find_one_and_update(
                {"applicant_id": applicant_id},
                {"$set": {"status": status, "updated_at": datetime.utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        return ApplicantModel(**doc) if doc else None

    async def delete(self, applicant_id: str) -> bool:
        with self._context("delete_applicant", applicant_id=applicant_id):
            result = await self._coll.delete_one({"applicant_id": applicant_id})
        return result.deleted_count > 0


class AssessmentRepository(BaseRepository):
    collection_name = "assessments"

    async def create(self, assessment: AssessmentModel) -> AssessmentModel:
        """Create or replace the applicant's assessment (one per applicant)."""
        with self._context("create_assessment", applicant_id=assessment.applicant_id):
            await self._coll.replace_one(
                {"applicant_id": assessment.applicant_id},
                to_document(assessment),
                upsert=True,
            )
        return assessment

    async def get_by_applicant(self, applicant_id: str) -> Optional[AssessmentModel]:
        with self._context("get_assessment", applicant_id=applicant_id):
            doc = await self._coll.find_one({"applicant_id": applicant_id})
        return AssessmentModel(**doc) if doc else None

    async def get_for_applicants(self, applicant_ids: Iterable[str]) -> Dict[str, AssessmentModel]:
        with self._context("get_assessments_for_applicants"):
            cursor = self._coll.find({"applicant_id": {"$in": list(applicant_ids)}})
            docs = await cursor.to_list(length=None)
        return {d["applicant_id"]: AssessmentModel(**d) for d in docs}

    async def finalize(self, applicant_id: str, update: Dict[str, Any]) -> bool:
        """
        Terminal write for a pending assessment.

        Only a row still in ``pending`` is touched, so the transition
        happens at most once. Returns False when the row is gone or was
        already finalized.
        """
        update = {k: (v.value if isinstance(v, Enum) else v) for k, v in update.items()}
        update.setdefault("processed_at", datetime.utcnow())
        with self._context("finalize_assessment", applicant_id=applicant_id):
            result = await self._coll.update_one(
                {"applicant_id": applicant_id, "status": AssessmentStatus.PENDING.value},
                {"$set": update},
            )
        return result.modified_count > 0

    async def list(self, status: Optional[str] = None) -> List[AssessmentModel]:
        query = {"status": status} if status else {}
        with self._context("list_assessments"):
            docs = await self._coll.find(query).sort("created_at", DESCENDING).to_list(length=None)
        return [AssessmentModel(**d) for d in docs]

    async def delete_by_applicant(self, applicant_id: str) -> int:
        with self._context("delete_assessment", applicant_id=applicant_id):
            result = await self._coll.delete_many({"applicant_id": applicant_id})
        return result.deleted_count


class NotificationRepository(BaseRepository):
    collection_name = "notifications"

    async def add(self, record: NotificationRecord) -> NotificationRecord:
        with self._context("add_notification", applicant_id=record.applicant_id):
            await self._coll.insert_one(to_document(record))
        return record

    async def list_for_applicant(self, applicant_id: str) -> List[NotificationRecord]:
        with self._context("list_notifications", applicant_id=applicant_id):
            cursor = self._coll.find({"applicant_id": applicant_id}).sort("created_at", ASCENDING)
            docs = await cursor.to_list(length=None)
        return [NotificationRecord(**d) for d in docs]

    async def delete_by_applicant(self, applicant_id: str) -> int:
        with self._context("delete_notifications", applicant_id=applicant_id):
            result = await self._coll.delete_many({"applicant_id": applicant_id})
        return result.deleted_count


class RoleRepository(BaseRepository):
    collection_name = "roles"

    async def get(self, role_id: str) -> Optional[RoleProfile]:
        with self._context("get_role", role_id=role_id):
            doc = await self._coll.find_one({"role_id": role_id})
        return RoleProfile(**doc) if doc else None

    async def list(self) -> List[RoleProfile]:
        with self._context("list_roles"):
            docs = await self._coll.find({}).sort("role_id", ASCENDING).to_list(length=None)
        return [RoleProfile(**d) for d in docs]

    async def upsert(self, role: RoleProfile) -> RoleProfile:
        with self._context("upsert_role", role_id=role.role_id):
            await self._coll.replace_one({"role_id": role.role_id}, to_document(role), upsert=True)
        return role


class InterviewRepository(BaseRepository):
    collection_name = "interviews"

    async def create(self, interview: InterviewModel) -> InterviewModel:
        with self._context("create_interview", applicant_id=interview.applicant_id):
            await self._coll.insert_one(to_document(interview))
        return interview

    async def get(self, interview_id: str) -> Optional[InterviewModel]:
        with self._context("get_interview", interview_id=interview_id):
            doc = await self._coll.find_one({"interview_id": interview_id})
        return InterviewModel(**doc) if doc else None

    async def list(self, applicant_id: Optional[str] = None, status: Optional[str] = None) -> List[InterviewModel]:
        query: Dict[str, Any] = {}
        if applicant_id:
            query["applicant_id"] = applicant_id
        if status:
            query["status"] = status
        with self._context("list_interviews"):
            docs = await self._coll.find(query).sort("scheduled_at", ASCENDING).to_list(length=None)
        return [InterviewModel(**d) for d in docs]

    async def update(self, interview_id: str, changes: Dict[str, Any]) -> Optional[InterviewModel]:
        changes = {k: (v.value if isinstance(v, Enum) else v) for k, v in changes.items()}
        changes["updated_at"] = datetime.utcnow()
        with self._context("update_interview", interview_id=interview_id):
            doc = await self._coll.find_one_and_update(
                {"interview_id": interview_id},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        return InterviewModel(**doc) if doc else None

    async def delete_by_applicant(self, applicant_id: str) -> int:
        with self._context("delete_interviews", applicant_id=applicant_id):
            result = await self._coll.delete_many({"applicant_id": applicant_id})
        return result.deleted_count
