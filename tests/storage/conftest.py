"""Fixtures for storage layer tests."""

import pytest

from lnp2p.storage.database import base


@pytest.fixture(scope="function")
def test_db(tmp_path, monkeypatch):
    """
    Initialize the module-level engine against a throwaway SQLite file.

    The previous engine and session factory are restored afterwards so other
    tests never see this database.
    """
    monkeypatch.setattr(base, "engine", None)
    monkeypatch.setattr(base, "SessionLocal", None)

    engine = base.init_db(f"sqlite:///{tmp_path / 'storage.db'}")

    yield engine

    engine.dispose()
