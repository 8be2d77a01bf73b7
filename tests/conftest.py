import asyncio
import copy
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from grader.config import Config
from grader.exams.errors import Unauthorized
from grader.main import create_app

TEST_ENV = {
    "MONGO_URL": "mongodb://localhost:27017",
    "FIREBASE_PROJECT_ID": "test-project",
}

NOW = 1_700_000_000.0  # server clock, seconds


def _matches(doc, query):
    return all(doc.get(key) == value for key, value in query.items())


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        await asyncio.sleep(0)
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    """Just enough of motor's collection API for the grading flow"""

    def __init__(self, name, db):
        self.name = name
        self.db = db
        self.docs = []
        self.indexes = []
        self.fail_with = None

    def _check(self, op):
        self.db.ops.append((self.name, op))
        if self.fail_with is not None:
            raise self.fail_with

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))

    async def find_one(self, query, *args, **kwargs):
        self._check("find_one")
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query=None):
        self._check("find")
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query or {})])

    async def insert_one(self, doc):
        self._check("insert_one")
        await asyncio.sleep(0)
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", f"{self.name}-{len(self.docs) + 1}")
        if any(existing["_id"] == doc["_id"] for existing in self.docs):
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}")
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])


class FakeDatabase:
    def __init__(self):
        self.ops = []
        self._collections = {}

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection(name, self)
        return self._collections[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    async def command(self, name):
        return {"ok": 1}

    def writes(self):
        return [op for op in self.ops if op[1] == "insert_one"]


class FakeTokenVerifier:
    """Accepts tokens of the form ``valid-<uid>``"""

    def verify(self, token):
        if not token.startswith("valid-"):
            raise Unauthorized()
        return token[len("valid-"):]


@pytest.fixture
def config():
    return Config(env=dict(TEST_ENV))


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def seed_exam(db):
    """Course c1 with exam e1: q1 -> "A", q2 -> "B" (legacy field), 1 point each"""

    def _seed(passing_score=None, questions=None, course_title="Intro to Testing"):
        if course_title is not None:
            db.courses.docs.append({"_id": "course-c1", "course_id": "c1", "title": course_title})
        exam = {"_id": "exam-e1", "exam_id": "e1", "course_id": "c1", "title": "Final"}
        if passing_score is not None:
            exam["passing_score"] = passing_score
        db.exams.docs.append(exam)
        if questions is None:
            questions = [
                {"question_id": "q1", "correct_answer": "A", "points": 1},
                {"question_id": "q2", "answer": "B"},
            ]
        for i, q in enumerate(questions):
            db.exam_questions.docs.append({"_id": f"question-{i}", "exam_id": "e1", "course_id": "c1", **q})
        db.ops.clear()

    return _seed


@pytest.fixture
def client(config, db):
    app = create_app(config=config, db=db, token_verifier=FakeTokenVerifier(), clock=lambda: NOW)
    return TestClient(app)


def auth_header(uid="user-1"):
    return {"Authorization": f"Bearer valid-{uid}"}
