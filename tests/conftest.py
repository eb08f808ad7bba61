"""
Shared fixtures: a throwaway SQLite database per test, a keyword embedding
provider with predictable similarities, and a small seeded data set.
"""

import re

import pytest

from actify.core.dao import EmbeddingDAO
from actify.core.query import QueryEngine
from actify.core.records import SQLiteRecordStore
from actify.core.schema import Principal
from actify.vector.embeddings import IEmbeddingProvider
from actify.vector.indexer import Indexer
from actify.vector.search import SearchEngine


class KeywordEmbedding(IEmbeddingProvider):
    """One dimension per vocabulary word; a text's vector counts its vocabulary words."""

    VOCABULARY = ["robotics", "chess", "music", "hospital", "tutoring", "leadership", "essay", "stanford"]

    def __init__(self, model: str = "keyword-test"):
        self._model = model

    def embed_text(self, text):
        tokens = re.findall(r"[a-z]+", text.lower())
        return [float(tokens.count(word)) for word in self.VOCABULARY]

    def get_dimension(self):
        return len(self.VOCABULARY)

    @property
    def model_id(self):
        return self._model


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "actify.db")


@pytest.fixture
def record_store(db_path):
    return SQLiteRecordStore(db_path)


@pytest.fixture
def embedding_store(db_path):
    return EmbeddingDAO(db_path)


@pytest.fixture
def provider():
    return KeywordEmbedding()


@pytest.fixture
def indexer(provider, embedding_store, record_store):
    return Indexer(provider, embedding_store, record_store, delay_sec=0)


@pytest.fixture
def search_engine(provider, embedding_store, record_store):
    return SearchEngine(provider, embedding_store, record_store)


@pytest.fixture
def query_engine(record_store):
    return QueryEngine(record_store)


@pytest.fixture
def student():
    return Principal(id="student-1", role="student")


@pytest.fixture
def other_student():
    return Principal(id="student-2", role="student")


@pytest.fixture
def admin():
    return Principal(id="admin-1", role="admin")


@pytest.fixture
def seeded(record_store):
    """Insert a small cross-section of records and return the store."""
    users = [
        {"id": "student-1", "name": "Ada Student", "email": "ada@example.com", "role": "student",
         "passwordHash": "$2b$10$abc"},
        {"id": "student-2", "name": "Ben Student", "email": "ben@example.com", "role": "student"},
        {"id": "admin-1", "name": "Admin", "email": "admin@example.com", "role": "admin"},
    ]
    for user in users:
        record_store.insert("User", user)

    record_store.insert("Organization", {
        "id": "org-approved", "name": "Robotics Club", "description": "Build robotics kits after school",
        "category": "STEM", "presidentName": "Ada Student", "contactEmail": "robotics@example.com",
        "status": "APPROVED",
    })
    record_store.insert("Organization", {
        "id": "org-pending", "name": "Chess Society", "description": "Weekly chess practice",
        "category": "Games", "status": "PENDING",
    })

    record_store.insert("Activity", {
        "id": "act-1", "studentId": "student-1", "name": "Robotics team captain",
        "organization": "Robotics Club", "category": "STEM", "totalHours": 120.0, "status": "verified",
        "createdAt": "2024-01-01T00:00:00",
    })
    record_store.insert("Activity", {
        "id": "act-2", "studentId": "student-2", "name": "Hospital music volunteer",
        "organization": "City Hospital", "category": "Service", "totalHours": 40.0, "status": "pending",
        "createdAt": "2024-02-01T00:00:00",
    })
    record_store.insert("Activity", {
        "id": "act-3", "studentId": "student-1", "name": "Chess tutoring",
        "organization": "Library", "category": "Academic", "totalHours": 15.5, "status": "pending",
        "createdAt": "2024-03-01T00:00:00",
    })

    record_store.insert("AlumniProfile", {
        "id": "ap-full", "userId": "alum-1", "displayName": "Jamie", "fullName": "Jamie Rivera",
        "contactEmail": "jamie@example.com", "privacy": "FULL", "intendedMajor": "Computer Science",
        "graduationYear": 2022,
    })
    record_store.insert("AlumniProfile", {
        "id": "ap-pseudo", "userId": "alum-2", "fullName": "Sam Lee", "contactEmail": "sam@example.com",
        "privacy": "PSEUDONYM", "intendedMajor": "Biology", "graduationYear": 2021,
    })
    record_store.insert("AlumniProfile", {
        "id": "ap-anon", "userId": "alum-3", "displayName": "Hidden", "fullName": "Pat Kim",
        "privacy": "ANONYMOUS", "intendedMajor": "History", "graduationYear": 2020,
    })

    record_store.insert("AlumniApplication", {"id": "app-full", "alumniProfileId": "ap-full", "status": "parsed"})
    record_store.insert("AlumniApplication", {"id": "app-anon", "alumniProfileId": "ap-anon", "status": "parsed"})

    record_store.insert("ExtractedEssay", {
        "id": "essay-full", "applicationId": "app-full", "topic": "Robotics leadership",
        "summary": "Leading a robotics team to regionals", "tags": '["robotics", "leadership"]',
    })
    record_store.insert("ExtractedEssay", {
        "id": "essay-anon", "applicationId": "app-anon", "topic": "Robotics essay",
        "summary": "Robotics as a second language",
    })

    return record_store
