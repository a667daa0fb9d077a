# tests/conftest.py — Shared test fixtures
import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["IDENTITY_JWT_SECRET"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"

from models import (
    Base, User, Project, Sprint, Issue,
    IssueStatus, IssuePriority, SprintStatus,
)
from auth import IdentityService, ORG_ADMIN_ROLE, ORG_MEMBER_ROLE
from database import get_db_session
from main import app

TEST_ORG_ID = "org_test"
OTHER_ORG_ID = "org_other"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _make_user(db_session, external_id: str, email: str, name: str) -> User:
    user = User(id=str(uuid.uuid4()), external_id=external_id, email=email, name=name)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session):
    """Organisation member"""
    return await _make_user(db_session, "user_member", "member@shopfloor.dev", "Member User")


@pytest_asyncio.fixture
async def admin_user(db_session):
    """Organisation admin (role comes from the session token)"""
    return await _make_user(db_session, "user_admin", "admin@shopfloor.dev", "Admin User")


@pytest_asyncio.fixture
async def outsider_user(db_session):
    """Signed in to a different organisation"""
    return await _make_user(db_session, "user_outsider", "outsider@elsewhere.dev", "Outsider")


@pytest_asyncio.fixture
async def test_project(db_session):
    project = Project(
        id=str(uuid.uuid4()),
        name="Motor Line",
        key="MTR",
        description="Electric motor production",
        organization_id=TEST_ORG_ID,
    )
    db_session.add(project)
    await db_session.commit()
    await db_session.refresh(project)
    return project


async def _make_sprint(db_session, project, name, status, start_offset_days, length_days=14) -> Sprint:
    now = datetime.now(timezone.utc)
    sprint = Sprint(
        id=str(uuid.uuid4()),
        name=name,
        start_date=now + timedelta(days=start_offset_days),
        end_date=now + timedelta(days=start_offset_days + length_days),
        status=status,
        project_id=project.id,
    )
    db_session.add(sprint)
    await db_session.commit()
    await db_session.refresh(sprint)
    return sprint


@pytest_asyncio.fixture
async def active_sprint(db_session, test_project):
    return await _make_sprint(db_session, test_project, "MTR-1", SprintStatus.ACTIVE, -1)


@pytest_asyncio.fixture
async def planned_sprint(db_session, test_project):
    return await _make_sprint(db_session, test_project, "MTR-2", SprintStatus.PLANNED, -1)


@pytest_asyncio.fixture
async def completed_sprint(db_session, test_project):
    return await _make_sprint(db_session, test_project, "MTR-0", SprintStatus.COMPLETED, -20)


async def make_issue(db_session, project, reporter, sprint=None, title="Issue",
                     status=IssueStatus.TODO, order=0, track=None) -> Issue:
    """Insert an issue directly with a chosen order value"""
    issue = Issue(
        id=str(uuid.uuid4()),
        title=title,
        status=status,
        order=order,
        priority=IssuePriority.MEDIUM,
        reporter_id=reporter.id,
        project_id=project.id,
        sprint_id=sprint.id if sprint else None,
        track=track,
    )
    db_session.add(issue)
    await db_session.commit()
    await db_session.refresh(issue)
    return issue


async def fetch_issue(db_session, issue_id: str):
    """Re-read an issue from the store, bypassing the session's identity map"""
    stmt = select(Issue).where(Issue.id == issue_id).execution_options(populate_existing=True)
    result = await db_session.execute(stmt)
    return result.scalar_one_or_none()


def get_auth_headers(user: User, org_id: str = TEST_ORG_ID, role: str = ORG_MEMBER_ROLE) -> dict:
    """Generate identity-provider session headers for a user"""
    token = IdentityService.create_session_token(
        external_id=user.external_id,
        organization_id=org_id,
        email=user.email,
        name=user.name,
        org_role=role,
    )
    return {"Authorization": f"Bearer {token}"}


def get_admin_headers(user: User, org_id: str = TEST_ORG_ID) -> dict:
    return get_auth_headers(user, org_id=org_id, role=ORG_ADMIN_ROLE)
