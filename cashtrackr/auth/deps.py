from __future__ import annotations

from typing import Any, Dict, Optional

import jwt
from fastapi import Header, Request

from cashtrackr.db import connect
from cashtrackr.errors import Internal, Unauthorized

from .crud import get_user_by_id, public_user
from .security import decode_access_token


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def _unauthorized(detail: str) -> Unauthorized:
    return Unauthorized(detail, headers={"WWW-Authenticate": "Bearer"})


def _user_lookup_failed(reason: str) -> Internal:
    # Token verification failures and missing accounts are reported as a server
    # error ("Error al obtener el usuario"), same as the existing clients expect.
    # The reason is only logged.
    _debug(f"user lookup failed: {reason}")
    return Internal("Error al obtener el usuario")


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token segment of an Authorization header.

    Raises 401 "No autorizado" when the header is missing and 401 "Token No Válido"
    when it has no second segment. The scheme word itself is not checked.
    """
    if not authorization:
        raise _unauthorized("No autorizado")

    parts = authorization.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        raise _unauthorized("Token No Válido")
    return token


def resolve_user(db_dsn: str, secret: str, token: str) -> Dict[str, Any]:
    try:
        payload = decode_access_token(token=token, secret=secret)
    except jwt.ExpiredSignatureError:
        raise _user_lookup_failed("token_expired")
    except jwt.InvalidTokenError:
        raise _user_lookup_failed("token_invalid")

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise _user_lookup_failed("token_sub_not_int")

    try:
        with connect(db_dsn) as conn:
            row = get_user_by_id(conn, user_id)
    except Exception as e:
        raise _user_lookup_failed(f"store_error: {type(e).__name__}: {e}")

    if row is None:
        raise _user_lookup_failed("user_not_found")
    return public_user(row)


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    """Authenticate a request from `Authorization: Bearer <jwt>`.

    Returns the public account (id, name, email); the password hash never leaves
    the User Directory.
    """

    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise Internal("server_config_missing")

    token = extract_bearer_token(authorization)
    return resolve_user(cfg.DB_DSN, cfg.AUTH_JWT_SECRET, token)
