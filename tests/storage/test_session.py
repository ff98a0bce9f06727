"""Test suite for database initialization and session management.

Tests cover:
- init_db schema creation and SQLite connect args
- get_session before and after initialization
- db_session commit visibility, rollback on error and cleanup
"""

import pytest
from sqlalchemy import inspect

from lnp2p.exceptions import DatabaseNotInitializedError
from lnp2p.storage.database import base
from lnp2p.storage.session import db_session
from lnp2p.trading.domain.models import User

pytestmark = pytest.mark.unit


# ============================================================================
# init_db / get_session
# ============================================================================


class TestInitDb:
    """Test database initialization."""

    def test_creates_tables(self, test_db):
        """Test that the trading tables exist after init_db."""
        tables = set(inspect(test_db).get_table_names())

        assert {"users", "orders"} <= tables

    def test_session_factory_bound(self, test_db):
        session = base.get_session()
        try:
            assert session.get_bind() is test_db
        finally:
            session.close()

    def test_get_session_requires_init(self, monkeypatch):
        """Test that sessions cannot be created before init_db."""
        monkeypatch.setattr(base, "SessionLocal", None)

        with pytest.raises(DatabaseNotInitializedError):
            base.get_session()


# ============================================================================
# db_session Context Manager Tests
# ============================================================================


class TestDbSession:
    """Test synchronous db_session context manager."""

    def test_commit_persists_changes(self, test_db):
        with db_session() as db:
            db.add(User(external_id="1001", username="alice"))
            db.commit()

        with db_session() as db:
            stored = db.query(User).filter_by(external_id="1001").one()
            assert stored.username == "alice"

    def test_rollback_on_exception(self, test_db):
        """Test that uncommitted work is discarded when the block raises."""
        with pytest.raises(ValueError, match="boom"):
            with db_session() as db:
                db.add(User(external_id="1002"))
                db.flush()
                raise ValueError("boom")

        with db_session() as db:
            assert db.query(User).filter_by(external_id="1002").first() is None

    def test_session_closed_on_exit(self, test_db):
        with db_session() as db:
            db.add(User(external_id="1003"))
            db.commit()
            user = db.query(User).filter_by(external_id="1003").one()

        assert user not in db

    def test_requires_init(self, monkeypatch):
        monkeypatch.setattr(base, "SessionLocal", None)

        with pytest.raises(DatabaseNotInitializedError):
            with db_session():
                pass
