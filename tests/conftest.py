from __future__ import annotations

import pytest

from planner.infra.db import init_db
from planner.infra.store import PlannerStore


@pytest.fixture()
def session_factory():
    factory = init_db("sqlite://", create_schema=True)
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture()
def store(session_factory) -> PlannerStore:
    return PlannerStore(session_factory, "user-1")
