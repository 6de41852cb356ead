# tests/conftest.py
import os
import pytest
from datetime import datetime
from types import SimpleNamespace
from fastapi.testclient import TestClient

# Set environment variables for testing
os.environ["SECRET_KEY"] = "testing_secret_key_for_development_only"
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/timeclock_test")

from main import app
from timeclock.models.clock_event import ClockEvent, EventType
from bson import ObjectId
from timeclock import db as timeclock_db
from timeclock.routes import clock, locations, timesheets
from timeclock.utils.auth import get_current_user

ORG_ID = "org-1"

EMPLOYEE = {
    "_id": "emp-1",
    "name": "Ada Employee",
    "email": "ada@example.com",
    "role": "employee",
    "organization_id": ORG_ID,
    "isActive": True,
}

MANAGER = {
    "_id": "mgr-1",
    "name": "Max Manager",
    "email": "max@example.com",
    "role": "manager",
    "organization_id": ORG_ID,
    "isActive": True,
}

ADMIN = {**MANAGER, "_id": "adm-1", "name": "Ann Admin", "role": "administrator"}


def at(hour, minute=0, day=15):
    return datetime(2025, 1, day, hour, minute)


def event(event_type, when, employee_id="emp-1"):
    return ClockEvent(
        employee_id=employee_id,
        event_type=EventType(event_type),
        timestamp=when,
        organization_id=ORG_ID,
    )


@pytest.fixture(autouse=True)
def silence_audit_log(monkeypatch):
    """Keep route tests off the activity_logs collection."""
    async def no_op(*args, **kwargs):
        return None

    monkeypatch.setattr(clock, "log_event", no_op)
    monkeypatch.setattr(locations, "log_event", no_op)
    monkeypatch.setattr(timesheets, "log_event", no_op)


@pytest.fixture
def login():
    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return user
    yield _login
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _matches(doc, query):
    for key, condition in query.items():
        value = doc.get(key)
        if isinstance(condition, dict):
            for op, operand in condition.items():
                if op == "$ne" and value == operand:
                    return False
                if op == "$in" and value not in operand:
                    return False
                if op == "$gte" and (value is None or value < operand):
                    return False
                if op == "$gt" and (value is None or value <= operand):
                    return False
                if op == "$lte" and (value is None or value > operand):
                    return False
                if op == "$lt" and (value is None or value >= operand):
                    return False
        elif value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, key, direction=1):
        self.docs = sorted(self.docs, key=lambda doc: doc.get(key), reverse=direction == -1)
        return self

    def limit(self, count):
        self.docs = self.docs[:count]
        return self

    async def to_list(self, length):
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    """The slice of Motor's collection API the routes use, kept in memory."""

    def __init__(self):
        self.docs = []

    def find(self, query=None):
        return FakeCursor([dict(doc) for doc in self.docs if _matches(doc, query or {})])

    async def find_one(self, query, sort=None):
        found = self.find(query)
        for key, direction in sort or []:
            found.sort(key, direction)
        return found.docs[0] if found.docs else None

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        self.docs.append(dict(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def update_one(self, query, update):
        return await self._update(query, update, many=False)

    async def update_many(self, query, update):
        return await self._update(query, update, many=True)

    async def _update(self, query, update, many):
        modified = 0
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                modified += 1
                if not many:
                    break
        return SimpleNamespace(matched_count=modified, modified_count=modified)

    async def count_documents(self, query):
        return len(self.find(query).docs)


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())


@pytest.fixture
def fake_db(monkeypatch):
    """In-memory database behind get_db()."""
    database = FakeDatabase()
    monkeypatch.setattr(timeclock_db, "db", database)
    return database
