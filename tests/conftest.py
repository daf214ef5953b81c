import copy
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from auth import get_scope
from main import app
from repository import ApplicantRepository, RecruiterRepository, Scope, get_applicant_repository, get_recruiter_repository


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        present = [d for d in self._docs if d.get(key) is not None]
        missing = [d for d in self._docs if d.get(key) is None]
        present.sort(key=lambda d: d[key], reverse=direction == DESCENDING)
        self._docs = present + missing
        return self

    def limit(self, n):
        if n:
            self._docs = self._docs[:n]
        return self

    def __aiter__(self):
        self._it = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._it)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """In-memory stand-in for the handful of motor collection calls we make."""

    def __init__(self, docs=None, unique=()):
        self.docs = []
        self.unique = unique
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0
        for d in docs or []:
            d = dict(d)
            d.setdefault("_id", ObjectId())
            self.docs.append(d)

    @staticmethod
    def _match(doc, flt):
        return all(doc.get(k) == v for k, v in flt.items())

    def _check_read(self):
        if self.fail_reads:
            raise PyMongoError("read failed")

    def _check_write(self):
        if self.fail_writes:
            raise PyMongoError("write failed")

    def find(self, flt=None):
        self._check_read()
        return FakeCursor([copy.deepcopy(d) for d in self.docs if self._match(d, flt or {})])

    async def find_one(self, flt):
        self._check_read()
        for d in self.docs:
            if self._match(d, flt):
                return copy.deepcopy(d)
        return None

    async def insert_one(self, doc):
        self._check_write()
        for field in self.unique:
            if any(d.get(field) == doc.get(field) for d in self.docs):
                raise DuplicateKeyError("dup", 11000, {"keyPattern": {field: 1}})
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        self.writes += 1
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one_and_update(self, flt, update, return_document=ReturnDocument.BEFORE):
        self._check_write()
        for d in self.docs:
            if self._match(d, flt):
                before = copy.deepcopy(d)
                d.update(update.get("$set", {}))
                self.writes += 1
                return copy.deepcopy(d) if return_document == ReturnDocument.AFTER else before
        return None

    async def find_one_and_delete(self, flt):
        self._check_write()
        for i, d in enumerate(self.docs):
            if self._match(d, flt):
                self.writes += 1
                return self.docs.pop(i)
        return None

    async def delete_one(self, flt):
        found = await self.find_one_and_delete(flt)
        return SimpleNamespace(deleted_count=1 if found else 0)


def ts(day, hour=6):
    return datetime(2026, 10, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def applicant_docs():
    return [
        {"fullName": "Anita Rao", "email": "anita@x.com", "phone": "9000000001", "city": "Hyderabad",
         "reference": "Ravi", "status": "Hired", "salesCompleted": 5, "submittedAt": ts(12)},
        {"fullName": "Bharat Kumar", "email": "bharat@x.com", "phone": "9000000002", "city": "Vizag",
         "reference": "Ravi", "submittedAt": ts(10)},
        {"fullName": "Chitra Das", "email": "chitra@y.com", "phone": "9000000003", "city": "Hyderabad",
         "reference": "Meena", "status": "Contacted", "salesCompleted": 0, "submittedAt": ts(5)},
        {"fullName": "Deepak Jain", "email": "deepak@y.com", "phone": "9000000004", "city": "Pune",
         "reference": "Meena", "status": "Hired", "salesCompleted": 2, "submittedAt": datetime(2026, 9, 28, 6, tzinfo=timezone.utc)},
    ]


@pytest.fixture
def applicants(applicant_docs):
    return FakeCollection(applicant_docs, unique=("email", "phone"))


@pytest.fixture
def agents():
    return FakeCollection([
        {"name": "Ravi Teja", "email": "ravi@org.com", "uid": "uid-ravi", "role": "agent",
         "referenceLabel": "Ravi", "createdAt": ts(1)},
    ])


@pytest.fixture
def references():
    return FakeCollection([
        {"name": "Ravi"},
        {"name": "Meena", "uid": "uid-meena", "referenceLabel": "Meena"},
    ])


@pytest.fixture
def scope_holder():
    return {"scope": Scope(role="admin")}


@pytest.fixture
def client(applicants, agents, references, scope_holder):
    app.dependency_overrides[get_applicant_repository] = lambda: ApplicantRepository(applicants)
    app.dependency_overrides[get_recruiter_repository] = lambda: RecruiterRepository(agents, references)
    app.dependency_overrides[get_scope] = lambda: scope_holder["scope"]
    yield TestClient(app)
    app.dependency_overrides.clear()
