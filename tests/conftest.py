"""Shared fixtures: one ProfileStore per backend, plus profile factories."""
import itertools

import mongomock
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.db import InMemoryProfileStore, MongoProfileStore, SqlProfileStore
from app.models import ProfileCandidate
from app.services.match_service import MatchService
from app.services.matching_service import MatchingEngine

_ids = itertools.count(1)


def make_candidate(major: str = "Computer Science", **overrides) -> ProfileCandidate:
    n = next(_ids)
    fields = {
        "name": f"Student {n}",
        "email": f"student{n}@university.edu",
        "institutional_id": f"ab{n:04d}",
        "major": major,
        "graduation_year": 2026,
    }
    fields.update(overrides)
    return ProfileCandidate(**fields)


def make_fields(major: str = "Computer Science", **overrides) -> dict:
    """Raw submission fields, as the web form would post them."""
    n = next(_ids)
    fields = {
        "name": f"Student {n}",
        "email": f"student{n}@university.edu",
        "institutional_id": f"ab{n:04d}",
        "major": major,
        "graduation_year": 2026,
    }
    fields.update(overrides)
    return fields


def memory_store():
    return InMemoryProfileStore()


def mongo_store():
    client = mongomock.MongoClient()
    store = MongoProfileStore("mongodb://localhost:27017", "rcssa_test", client_factory=lambda *a, **kw: client)
    store.open()
    return store


def sql_store():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    store = SqlProfileStore(engine=engine)
    store.open()
    return store


STORE_FACTORIES = {
    "memory": memory_store,
    "mongo": mongo_store,
    "sql": sql_store,
}


@pytest.fixture(params=sorted(STORE_FACTORIES))
def store(request):
    """Every store backend, so the contract tests run against each."""
    store = STORE_FACTORIES[request.param]()
    yield store
    store.close()


@pytest.fixture
def engine(store):
    return MatchingEngine(store, max_attempts=3)


@pytest.fixture
def service(store, engine):
    return MatchService(store, engine)
