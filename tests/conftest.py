"""
Shared pytest fixtures for the MAAP check-in test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - company / person / teammate / manager: a minimal directory
    - finalizer: the Person who finalizes check-ins (has a teammate row)
    - mark_ready: callable that completes both sides of a check-in
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from maap import create_app
from maap.models import db as _db
from maap.models.organization import Organization, Person, Teammate


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


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


# ── Directory fixtures ───────────────────────────────────────────────────


@pytest.fixture()
def company():
    org = Organization(name="Acme Co", type="company")
    _db.session.add(org)
    _db.session.commit()
    return org


@pytest.fixture()
def person():
    p = Person(full_name="Dana Employee", email="dana@acme.test")
    _db.session.add(p)
    _db.session.commit()
    return p


@pytest.fixture()
def teammate(person, company):
    tm = Teammate(person_id=person.id, organization_id=company.id, first_employed_at=date(2023, 1, 9))
    _db.session.add(tm)
    _db.session.commit()
    return tm


@pytest.fixture()
def manager(company):
    """Manager's Teammate row in the same company."""
    p = Person(full_name="Morgan Manager", email="morgan@acme.test")
    _db.session.add(p)
    _db.session.flush()
    tm = Teammate(person_id=p.id, organization_id=company.id)
    _db.session.add(tm)
    _db.session.commit()
    return tm


@pytest.fixture()
def finalizer(manager):
    """Person who finalizes check-ins; the manager in these tests."""
    return manager.person


@pytest.fixture()
def mark_ready(finalizer):
    """Return a helper that stamps both completion sides of a check-in."""

    def _mark(check_in):
        now = datetime.now(timezone.utc)
        check_in.employee_completed_at = now - timedelta(hours=1)
        check_in.manager_completed_at = now
        check_in.manager_completed_by_id = finalizer.id
        _db.session.commit()
        return check_in

    return _mark
