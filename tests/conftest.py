from __future__ import annotations

import os
import tempfile
from typing import Any, Generator

import pytest

# Point the application engine at a throwaway SQLite file before the package is imported
_fd, _TEST_DB_PATH = tempfile.mkstemp(prefix="fp_test_", suffix=".sqlite3")
os.close(_fd)
os.environ["FP_DATABASE_URL"] = f"sqlite:///{_TEST_DB_PATH}"
os.environ["FP_SEED_DEFAULT_CATEGORIES"] = "false"

from sqlalchemy.orm import sessionmaker  # noqa: E402

from finance_planner.core.database import Base, engine as app_engine, get_db  # noqa: E402
from finance_planner.main import app  # noqa: E402
from finance_planner import models  # noqa: E402


@pytest.fixture(scope="session")
def engine() -> Generator[Any, Any, Any]:
    Base.metadata.create_all(app_engine)
    yield app_engine
    app_engine.dispose()
    for suffix in ("", "-wal", "-shm"):
        try:
            os.remove(_TEST_DB_PATH + suffix)
        except OSError:
            pass


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Any, Any, Any]:
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    # every test starts with demo user 1 and no other rows
    user = models.User(email="demo@example.com", display_name="Demo", currency="INR", is_active=True)
    session.add(user)
    session.commit()

    try:
        yield session
    finally:
        session.close()
        # children first so foreign keys stay enforced; PRAGMA foreign_keys is a
        # no-op inside a transaction and would leak into the pooled connection
        with engine.begin() as conn:
            for tbl in reversed(Base.metadata.sorted_tables):
                conn.execute(tbl.delete())


@pytest.fixture(autouse=True)
def override_dependency(db_session):
    def _get_db_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_override
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def user_id(db_session) -> int:
    return db_session.query(models.User).filter_by(email="demo@example.com").one().id


@pytest.fixture()
def make_account(db_session, user_id):
    """Factory creating an account row directly through the service layer."""
    from finance_planner.services import AccountService

    def _make(name: str, initial="0", type_=models.AccountType.GENERAL, owner: int | None = None):
        return AccountService(db_session).create(
            {"name": name, "type": type_, "initial_balance": initial},
            user_id=owner or user_id,
        )

    return _make
