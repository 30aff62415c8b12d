"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Services commit
normally; their commits only release a nested SAVEPOINT.
"""

from __future__ import annotations

import os

import pytest
from authcore.core.extensions import db as _db  # Flask-SQLAlchemy instance
from authcore.factory import create_app  # application factory under test
from authcore.services._shared.ports import InMemoryNotifier
from authcore.services.registry import get_registry
from sqlalchemy.orm import scoped_session, sessionmaker

from tests.helpers.config import TestConfig


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and an
        :class:`InMemoryNotifier` in place of SMTP.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig, notifier=InMemoryNotifier(), instance_relative_config=False)
    yield app
    get_registry(app).shutdown()


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; automatically rolled
        back after each test.

    Notes
    -----
    The outer SAVEPOINT opens the SQLite transaction itself, so the
    SAVEPOINTs the session creates on ``commit()`` can never end it.
    """
    # 1) Top-level transaction + outer SAVEPOINT
    top_trans = connection.begin()
    connection.begin_nested()

    # 2) Scoped session joining the connection through its own SAVEPOINTs
    SessionFactory = sessionmaker(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
    )
    scoped = scoped_session(SessionFactory)

    # 3) Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


@pytest.fixture()
def registry(app):
    """Return the application's service registry."""
    return get_registry(app)


@pytest.fixture()
def notifier(registry):
    """Return the in-memory notifier behind the outbox, emptied for this test."""
    registry.outbox.drain()
    mailbox = registry.outbox.notifier
    mailbox.sent.clear()
    return mailbox


@pytest.fixture()
def client(app, session):
    return app.test_client()


@pytest.fixture()
def runner(app, session):
    return app.test_cli_runner()


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper to the transactional session fixture.

    Tests marked ``live_db`` drive their own application and database, so they
    are left without the SAVEPOINT session (it replaces ``db.session``).
    """
    from tests.factories import SQLAlchemySession

    if request.node.get_closest_marker("live_db"):
        SQLAlchemySession.set(None)
        yield
        return
    SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
