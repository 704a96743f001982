"""Account lifecycle: registration, confirmation, login and password management.

State lives entirely in the `users` row:

    register        -> confirmed=0, token=<code>       (confirmation email queued)
    confirm         -> confirmed=1, token=NULL
    forgot password -> token=<code>                    (reset email queued)
    reset password  -> password_hash=<new>, token=NULL

Every operation takes an open connection; the caller owns the transaction, so a
failure anywhere rolls back the account change together with its outbox email.

Check order in `login` is fixed (exists -> confirmed -> password) so the error a
client sees is deterministic.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, TypeVar

from cashtrackr.config import Config
from cashtrackr.emails.outbox import enqueue_email
from cashtrackr.emails.templates import CONFIRM_ACCOUNT, RESET_PASSWORD
from cashtrackr.errors import ApiError, Conflict, Forbidden, Internal, NotFound, Unauthorized

from . import crud
from .security import check_password, create_access_token, generate_token


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


F = TypeVar("F", bound=Callable[..., Any])


def _internal_error(message: str) -> Callable[[F], F]:
    """Turn any unexpected exception into one generic `Internal` error.

    `ApiError`s pass through untouched; everything else is logged and hidden.
    """

    def deco(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return fn(*args, **kwargs)
            except ApiError:
                raise
            except Exception as e:
                _debug(f"{fn.__name__} failed: {type(e).__name__}: {e}")
                raise Internal(message) from e

        return wrapper  # type: ignore[return-value]

    return deco


@_internal_error("Error al crear la cuenta")
def register_account(conn: Any, cfg: Config, *, name: str, email: str, password: str) -> int:
    """Create an unconfirmed account and queue its confirmation email.

    Returns the outbox email id so the caller can attempt delivery after commit.
    """
    if crud.email_exists(conn, email):
        raise Conflict("El Usuario ya está registrado")

    token = generate_token()
    user_id = crud.create_user(conn, name=name, email=email, password=password, token=token)
    if user_id is None:
        raise Conflict("El Usuario ya está registrado")
    email_id = enqueue_email(
        conn,
        template=CONFIRM_ACCOUNT,
        recipient=email,
        context={"name": name, "token": token},
        max_attempts=cfg.OUTBOX_MAX_ATTEMPTS,
    )
    _debug(f"Registered user_id={user_id}")
    return email_id


@_internal_error("Error al confirmar la cuenta")
def confirm_account(conn: Any, token: str) -> int:
    user_id = crud.confirm_user_with_token(conn, token)
    if user_id is None:
        raise Unauthorized("Token no válido")
    _debug(f"Confirmed user_id={user_id}")
    return user_id


@_internal_error("Error al iniciar sesión")
def login(conn: Any, cfg: Config, *, email: str, password: str) -> str:
    user = crud.get_user_by_email(conn, email)
    if user is None:
        raise NotFound("El Usuario no existe")

    if not int(user["confirmed"] or 0):
        raise Forbidden("La cuenta no ha sido confirmada")

    if not check_password(password, str(user["password_hash"])):
        raise Unauthorized("Contraseña incorrecta")

    return create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(user["id"]),
        expires_minutes=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES),
    )


@_internal_error("Error al enviar las instrucciones")
def request_password_reset(conn: Any, cfg: Config, *, email: str) -> int:
    user = crud.get_user_by_email(conn, email)
    if user is None:
        raise NotFound("El Usuario no existe")

    token = generate_token()
    crud.set_user_token(conn, int(user["id"]), token)
    return enqueue_email(
        conn,
        template=RESET_PASSWORD,
        recipient=str(user["email"]),
        context={"name": str(user["name"]), "token": token},
        max_attempts=cfg.OUTBOX_MAX_ATTEMPTS,
    )


@_internal_error("Error al validar el token")
def validate_token(conn: Any, token: str) -> None:
    if crud.get_user_by_token(conn, token) is None:
        raise NotFound("Token no válido")


@_internal_error("Error al restablecer la contraseña")
def reset_password_with_token(conn: Any, token: str, password: str) -> None:
    user = crud.get_user_by_token(conn, token)
    if user is None:
        raise NotFound("Token no válido")
    crud.set_user_password(conn, int(user["id"]), password, clear_token=True)
    _debug(f"Password reset user_id={user['id']}")


def _require_current_password(conn: Any, user_id: int, password: str) -> Any:
    user = crud.get_user_by_id(conn, user_id)
    if user is None or not check_password(password, str(user["password_hash"])):
        raise Unauthorized("El Password actual es incorrecto")
    return user


@_internal_error("Error al actualizar la contraseña")
def change_password(conn: Any, user_id: int, *, current_password: str, password: str) -> None:
    _require_current_password(conn, user_id, current_password)
    crud.set_user_password(conn, user_id, password)


@_internal_error("Error al verificar la contraseña")
def check_current_password(conn: Any, user_id: int, *, password: str) -> None:
    _require_current_password(conn, user_id, password)


@_internal_error("Error al actualizar el perfil")
def update_profile(conn: Any, user_id: int, *, name: str, email: str) -> Dict[str, Any]:
    other = crud.get_user_by_email(conn, email)
    if other is not None and int(other["id"]) != int(user_id):
        raise Conflict("Ese email ya está registrado por otro usuario")

    crud.update_user_profile(conn, user_id, name=name, email=email)
    row = crud.get_user_by_id(conn, user_id)
    return crud.public_user(row)
