"""Test fixtures for DevTeam Backend."""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("JWT_SECRET_KEY", "devteam-dev-jwt-secret-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("UPLOADS_BASE_PATH", tempfile.mkdtemp(prefix="devteam-uploads-"))

from attachment_helpers import create_test_token
from devteam.database import get_db
from devteam.main import app
from devteam.models import Project, Task
from devteam.services.attachments import AttachmentStorage, get_attachment_storage


# ============================================================================
# Auth Fixtures
# ============================================================================


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def auth_headers(user_id: UUID):
    token = create_test_token(str(user_id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def authed_client(client, auth_headers):
    client.headers.update(auth_headers)
    return client


# ============================================================================
# Database Fixtures
# ============================================================================


def _create_tables_sqlite(engine):
    """Create tables for SQLite testing.

    NOTE: UUID columns are declared as TEXT so SQLite keeps the hex strings
    SQLAlchemy binds for them verbatim; a column typed ``UUID`` would get
    numeric affinity. Keep this in sync with the models when adding columns.
    """
    with engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys=OFF"))

        # Projects (no deps)
        conn.execute(
            text(
                """
            CREATE TABLE IF NOT EXISTS projects (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP NOT NULL,
                updated_at DATETIME
            )
        """
            )
        )

        # Tasks (deps: projects)
        conn.execute(
            text(
                """
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
                title TEXT NOT NULL,
                description TEXT,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP NOT NULL,
                updated_at DATETIME
            )
        """
            )
        )

        # Attachments (deps: tasks)
        conn.execute(
            text(
                """
            CREATE TABLE IF NOT EXISTS attachments (
                id TEXT PRIMARY KEY,
                task_id TEXT NOT NULL REFERENCES tasks(id),
                name TEXT NOT NULL,
                stored_name TEXT UNIQUE NOT NULL,
                url TEXT NOT NULL,
                content_type TEXT NOT NULL,
                size INTEGER NOT NULL,
                uploaded_by TEXT NOT NULL,
                uploaded_at DATETIME DEFAULT CURRENT_TIMESTAMP NOT NULL
            )
        """
            )
        )

        conn.execute(text("PRAGMA foreign_keys=ON"))
        conn.commit()


@pytest.fixture(scope="function")
def engine():
    """Create a SQLite in-memory engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    _create_tables_sqlite(engine)

    yield engine


@pytest.fixture(scope="function")
def session(engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    TestingSessionLocal = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# Storage Fixtures
# ============================================================================


@pytest.fixture
def upload_root(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def storage(upload_root: Path) -> AttachmentStorage:
    return AttachmentStorage(upload_root, url_prefix="/uploads")


@pytest.fixture(scope="function")
def client(session: Session, storage: AttachmentStorage) -> Generator[TestClient, None, None]:
    """Create a test client with overridden session and storage dependencies."""

    def override_get_db():
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_attachment_storage] = lambda: storage
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def project(session: Session) -> Project:
    """Create a test project."""
    project = Project(name="Test Project", description="Project for attachment tests")
    session.add(project)
    session.flush()
    return project


@pytest.fixture
def task(session: Session, project: Project) -> Task:
    """Create a test task."""
    task = Task(
        project_id=project.id,
        title="Test Task",
        description="Test task description",
    )
    session.add(task)
    session.flush()
    return task

