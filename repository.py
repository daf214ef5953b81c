"""
Applicant and recruiter persistence on top of motor collections.

One repository serves every dashboard; what a caller may see or edit is
decided by its ``Scope`` which becomes part of every query.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from database import (
    AGENTS,
    APPLICANTS,
    REFERENCES,
    create_document,
    get_db,
    get_documents,
    parse_object_id,
    to_str_id,
    utcnow,
)
from schemas import DEFAULT_STATUS, STATUSES, Applicant, RecruiterCreate, RegistrationRequest
from validation import digits_only, normalize_email, parse_age

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("status", "salesCompleted", "notes", "starred")


class RepositoryError(Exception):
    """The backend call failed; nothing was changed on our side."""


class NotFound(Exception):
    pass


class DuplicateApplicantError(Exception):
    def __init__(self, field: str):
        super().__init__(f"duplicate {field}")
        self.field = field


@dataclass(frozen=True)
class Scope:
    role: str
    label: Optional[str] = None
    uid: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.role != "admin" and not self.label:
            raise ValueError(f"{self.role} scope needs a reference label")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def predicate(self) -> Dict[str, Any]:
        return {} if self.is_admin else {"reference": self.label}


ADMIN_SCOPE = Scope(role="admin")


class ApplicantRepository:
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def exists(self, field: str, value: str) -> bool:
        return await self.collection.find_one({field: value}) is not None

    async def register(self, req: RegistrationRequest, reference_id: Optional[str] = None) -> Dict[str, Any]:
        """Insert one applicant. Raises DuplicateApplicantError on a known email/phone."""
        email = normalize_email(req.email)
        phone = digits_only(req.phone)
        try:
            if await self.exists("email", email):
                raise DuplicateApplicantError("email")
            if await self.exists("phone", phone):
                raise DuplicateApplicantError("phone")

            applicant = Applicant(
                full_name=req.full_name.strip(),
                email=email,
                phone=phone,
                city=req.city.strip(),
                working_hours=req.working_hours,
                weekly_availability=req.weekly_availability,
                why_this_role=req.why_this_role.strip(),
                age=parse_age(req.age),
                gender=req.gender,
                education=req.education,
                current_position=req.current_position,
                reference=req.reference or None,
                reference_id=reference_id,
                status=DEFAULT_STATUS,
                sales_completed=0,
                submitted_at=utcnow(),
            )
            doc = await create_document(self.collection, applicant.model_dump(by_alias=True, exclude_none=True))
        except DuplicateKeyError as e:
            # lost the race against a concurrent submission; the unique index decided
            key = (e.details or {}).get("keyPattern") or {}
            raise DuplicateApplicantError("phone" if "phone" in key else "email") from e
        except PyMongoError as e:
            logger.exception("Applicant insert failed for %s", email)
            raise RepositoryError("Submission failed") from e
        logger.info("Registered applicant %s (reference=%s)", doc["_id"], req.reference)
        return to_str_id(doc)

    async def load(self, scope: Scope) -> List[Dict[str, Any]]:
        try:
            docs = await get_documents(self.collection, scope.predicate(), sort_field="submittedAt")
        except PyMongoError as e:
            logger.exception("Applicant load failed for %s scope", scope.role)
            raise RepositoryError("Failed to load applications") from e
        return [to_str_id(d) for d in docs]

    async def update_field(self, applicant_id: str, field: str, value: Any, scope: Scope) -> Dict[str, Any]:
        """Partial update of one editable field; returns the stored document after the write."""
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"{field} is not editable")
        if field == "status" and value not in STATUSES:
            raise ValueError(f"Unknown status: {value}")
        if field == "salesCompleted" and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
            raise ValueError("salesCompleted must be a non-negative integer")

        oid = parse_object_id(applicant_id)
        if oid is None:
            raise NotFound(applicant_id)
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": oid, **scope.predicate()},
                {"$set": {field: value, "updatedAt": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.exception("Update of %s on %s failed", field, applicant_id)
            raise RepositoryError("Failed to update application") from e
        if doc is None:
            raise NotFound(applicant_id)
        logger.info("Applicant %s: %s updated by %s", applicant_id, field, scope.role)
        return to_str_id(doc)

    async def delete(self, applicant_id: str) -> None:
        oid = parse_object_id(applicant_id)
        if oid is None:
            raise NotFound(applicant_id)
        try:
            result = await self.collection.delete_one({"_id": oid})
        except PyMongoError as e:
            logger.exception("Delete of %s failed", applicant_id)
            raise RepositoryError("Failed to delete application") from e
        if not result.deleted_count:
            raise NotFound(applicant_id)
        logger.info("Deleted applicant %s", applicant_id)


class RecruiterRepository:
    """Agents and references; ``references`` also feeds the intake dropdown."""

    def __init__(self, agents: AsyncIOMotorCollection, references: AsyncIOMotorCollection):
        self.agents = agents
        self.references = references

    async def reference_labels(self) -> List[str]:
        try:
            docs = await get_documents(self.references, {}, sort_field="name")
        except PyMongoError as e:
            logger.exception("Reference list failed")
            raise RepositoryError("Failed to load references") from e
        return sorted({d["name"] for d in docs if d.get("name")})

    async def uid_for_label(self, label: str) -> Optional[str]:
        """Firebase uid of the recruiter that owns a reference label, if it has a login."""
        try:
            ref = await self.references.find_one({"name": label})
            if ref and ref.get("uid"):
                return ref["uid"]
            agent = await self.agents.find_one({"referenceLabel": label})
        except PyMongoError as e:
            logger.exception("Recruiter lookup failed for label %s", label)
            raise RepositoryError("Failed to load recruiter") from e
        return agent.get("uid") if agent else None

    async def scope_for_uid(self, uid: str) -> Optional[Scope]:
        """Agent first, then reference; None when the uid is neither."""
        try:
            agent = await self.agents.find_one({"uid": uid})
            if agent:
                return Scope(role="agent", label=agent.get("referenceLabel"), uid=uid, name=agent.get("name"))
            ref = await self.references.find_one({"uid": uid})
        except PyMongoError as e:
            logger.exception("Recruiter lookup failed for %s", uid)
            raise RepositoryError("Failed to load recruiter") from e
        if ref:
            return Scope(role="reference", label=ref.get("referenceLabel") or ref.get("name"), uid=uid, name=ref.get("name"))
        return None

    async def list_agents(self) -> List[Dict[str, Any]]:
        try:
            docs = await get_documents(self.agents, {}, sort_field="createdAt")
        except PyMongoError as e:
            logger.exception("Agent list failed")
            raise RepositoryError("Failed to load agents") from e
        return [to_str_id(d) for d in docs]

    async def create_agent(self, req: RecruiterCreate, uid: str) -> Dict[str, Any]:
        now = utcnow()
        agent = {
            "name": req.name.strip(),
            "email": normalize_email(req.email),
            "uid": uid,
            "role": "agent",
            "referenceLabel": req.reference_label.strip(),
            "createdAt": now,
        }
        try:
            doc = await create_document(self.agents, agent)
            if not await self.references.find_one({"name": agent["referenceLabel"]}):
                await create_document(self.references, {"name": agent["referenceLabel"], "createdAt": now})
        except PyMongoError as e:
            logger.exception("Agent create failed for %s", agent["email"])
            raise RepositoryError("Failed to create agent") from e
        logger.info("Created agent %s (%s)", doc["_id"], agent["referenceLabel"])
        return to_str_id(doc)

    async def delete_agent(self, agent_id: str) -> Dict[str, Any]:
        oid = parse_object_id(agent_id)
        if oid is None:
            raise NotFound(agent_id)
        try:
            doc = await self.agents.find_one_and_delete({"_id": oid})
        except PyMongoError as e:
            logger.exception("Agent delete failed for %s", agent_id)
            raise RepositoryError("Failed to delete agent") from e
        if doc is None:
            raise NotFound(agent_id)
        logger.info("Deleted agent %s", agent_id)
        return to_str_id(doc)


def get_applicant_repository() -> ApplicantRepository:
    return ApplicantRepository(get_db()[APPLICANTS])


def get_recruiter_repository() -> RecruiterRepository:
    db = get_db()
    return RecruiterRepository(db[AGENTS], db[REFERENCES])
