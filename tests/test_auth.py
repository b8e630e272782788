import auth
import config
import db


def test_hash_and_verify():
    hashed = auth.hash_password("s3cret!")
    assert auth.verify_password("s3cret!", hashed)
    assert not auth.verify_password("wrong", hashed)


def test_long_passwords_are_truncated_not_rejected():
    long_pw = "x" * 100
    hashed = auth.hash_password(long_pw)
    assert auth.verify_password("x" * 72 + "different-tail", hashed)


def test_default_account_login_and_change(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "auth.db")
    db.init_db(auth.hash_password("admin123"))
    assert db.is_force_password_change()

    email = config.DEFAULT_ADMIN_EMAIL.upper()
    assert auth.login(email, "admin123")
    assert not auth.login(email, "nope")
    assert not auth.login("someone@example.com", "admin123")

    auth.change_password(email, "better-pass")
    assert auth.login(config.DEFAULT_ADMIN_EMAIL, "better-pass")
    assert not db.is_force_password_change()

    # second init keeps the existing account and flag
    db.init_db(auth.hash_password("admin123"))
    assert auth.login(config.DEFAULT_ADMIN_EMAIL, "better-pass")
    assert not db.is_force_password_change()
