"""
Shared pytest fixtures for the BuildOps Dashboard test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_project / design_project: project factories
"""

import pytest

from buildops import create_app
from buildops.models import db as _db
from buildops.models.project import Project


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def make_project():
    """Factory inserting a Project row directly (bypasses service defaults)."""

    def _make(**overrides) -> Project:
        fields = {
            "name": "Test Project",
            "client_name": "Test Client",
            "location": "Riyadh",
            "status": "design",
            "type": "design",
            "contract_type": "percentage",
            "budget": 100000.0,
            "revenue": 0.0,
            "expenses": 0.0,
            "progress": 0,
        }
        fields.update(overrides)
        project = Project(**fields)
        _db.session.add(project)
        _db.session.commit()
        return project

    return _make


@pytest.fixture()
def design_project(make_project):
    """A design project with outstanding design debt (budget > revenue)."""
    return make_project(name="Villa Design", budget=150000.0, revenue=50000.0)
