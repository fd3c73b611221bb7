from __future__ import annotations

import logging
import os
from typing import Any, Literal

import bcrypt

logger = logging.getLogger(__name__)

Role = Literal["user", "admin"]

_users: dict[str, dict[str, Any]] = {}


def _hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def register_user(username: str, password: str, role: Role = "user") -> None:
    """Create or replace an account. Passwords are stored as bcrypt hashes only."""
    if not username or not password:
        raise ValueError("username and password are required")
    _users[username] = {"password_hash": _hash_password(password), "role": role}


def _seed_users() -> None:
    """Pre-seed the demo buyer and admin accounts on import."""
    register_user("user", os.getenv("BRICKMATRIX_USER_PASSWORD", "user123"), "user")
    register_user("admin", os.getenv("BRICKMATRIX_ADMIN_PASSWORD", "admin123"), "admin")


def authenticate(username: str, password: str) -> dict[str, Any] | None:
    """Verify credentials. Returns ``{username, role}`` or ``None``."""
    record = _users.get(username)
    if record and _verify_password(password, record["password_hash"]):
        return {"username": username, "role": record["role"]}
    logger.info("Failed login for %r", username)
    return None


_seed_users()
