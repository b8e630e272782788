import pytest

import db


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "test.db")
    # cheap stand-in hash; tests that log in create their own
    db.init_db("not-a-real-hash")
    return db
