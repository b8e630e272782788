"""
auth.py
Staff sign-in: bcrypt hashing, verify, login by email, change password.
"""

from __future__ import annotations

import logging

import bcrypt

import db

logger = logging.getLogger(__name__)

# bcrypt ignores everything past 72 bytes and newer releases raise instead
BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(_secret(password), bcrypt.gensalt(rounds=12))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_secret(password), password_hash.encode("utf-8"))


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_staff_by_email(email: str):
    return db.fetch_one("SELECT * FROM staff_users WHERE email = ?", (normalize_email(email),))


def login(email: str, password: str) -> bool:
    staff = get_staff_by_email(email)
    if not staff or not verify_password(password, staff["password_hash"]):
        logger.warning("Failed sign-in for %s", normalize_email(email))
        return False
    return True


def change_password(email: str, new_password: str) -> None:
    db.execute(
        "UPDATE staff_users SET password_hash = ? WHERE email = ?",
        (hash_password(new_password), normalize_email(email)),
    )
    db.clear_force_password_change()
    logger.info("Password changed for %s", normalize_email(email))
