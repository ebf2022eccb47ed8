"""
Test Configuration — Fixtures for async DB, acting identity, and ruleset.

Each test gets its own SQLite file so concurrent reads (the reconciler
opens one session per query) see the same committed data.
"""

import uuid

import pytest

from compliance.ruleset import build_default_ruleset
from core.identity import IdentityContext
from db.models import Organization
from db.session import build_session_factory, create_tables

ORG_ID = "00000000-0000-0000-0000-000000000001"


@pytest.fixture
async def session_factory(tmp_path):
    """Fresh database per test with all tables built."""
    factory = build_session_factory(f"sqlite+aiosqlite:///{tmp_path / 'compliance.db'}")
    engine = factory.kw["bind"]
    await create_tables(engine)
    yield factory
    await engine.dispose()


@pytest.fixture
async def test_db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def org_id(test_db):
    """Seed one organization and return its id."""
    org_id = uuid.UUID(ORG_ID)
    test_db.add(Organization(org_id=org_id, name="Harbour Street Kitchen", business_category="category_1"))
    await test_db.commit()
    return org_id


@pytest.fixture
def identity(org_id):
    return IdentityContext(org_id=org_id, user_id="auth0|chef-1", display_name="Sam Rivera")


@pytest.fixture
def ruleset():
    return build_default_ruleset("test-rules")
