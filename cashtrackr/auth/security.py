from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from passlib.context import CryptContext


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_JWT_ALG = "HS256"


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def check_password(password: str, password_hash: str) -> bool:
    """Return whether `password` matches `password_hash`.

    A mismatch (or blank input) is False. A hash passlib cannot identify raises
    ValueError: that is stored-data corruption, not a wrong password.
    """
    if not password or not password_hash:
        return False
    return _pwd.verify(password, password_hash)


def generate_token() -> str:
    """6-digit numeric code used for account confirmation and password reset."""
    return str(100000 + secrets.randbelow(900000))


def create_access_token(*, secret: str, user_id: int, expires_minutes: int) -> str:
    if not secret:
        raise ValueError("jwt_secret_blank")

    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=max(1, int(expires_minutes)))

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALG)


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    if not token:
        raise ValueError("token_blank")
    if not secret:
        raise ValueError("jwt_secret_blank")
    return jwt.decode(token, secret, algorithms=[_JWT_ALG], options={"require": ["sub", "exp"]})
