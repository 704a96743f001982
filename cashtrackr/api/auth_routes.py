from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import BaseModel

from cashtrackr.auth import flow, get_current_user
from cashtrackr.config import Config
from cashtrackr.db import connect
from cashtrackr.emails.worker import deliver_email

from .limiter import rate_limited
from .validation import FieldErrors, has_min_length, is_blank, is_email, is_token


router = APIRouter(prefix="/auth", tags=["auth"])


def _cfg(request: Request) -> Config:
    return request.app.state.cfg


def _schedule_delivery(request: Request, background_tasks: BackgroundTasks, email_id: int) -> None:
    # Runs after the response is sent; a failed send stays in the outbox for the worker.
    background_tasks.add_task(deliver_email, _cfg(request), request.app.state.mailer, email_id)


class CreateAccountRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class TokenRequest(BaseModel):
    token: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class EmailRequest(BaseModel):
    email: Optional[str] = None


class PasswordRequest(BaseModel):
    password: Optional[str] = None


class UpdatePasswordRequest(BaseModel):
    current_password: Optional[str] = None
    password: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


# -----------------------------
# Public
# -----------------------------


@router.post("/create-account", status_code=201)
def create_account(payload: CreateAccountRequest, request: Request, background_tasks: BackgroundTasks) -> str:
    errors = FieldErrors()
    errors.check(not is_blank(payload.name), "name", "El nombre es obligatorio", value=payload.name)
    errors.check(has_min_length(payload.password, 8), "password", "La contraseña debe tener al menos 8 caracteres")
    errors.check(is_email(payload.email), "email", "El email no es válido", value=payload.email)
    errors.raise_if_any()

    cfg = _cfg(request)
    with connect(cfg.DB_DSN) as conn:
        email_id = flow.register_account(
            conn,
            cfg,
            name=str(payload.name).strip(),
            email=str(payload.email),
            password=str(payload.password),
        )

    _schedule_delivery(request, background_tasks, email_id)
    return "Cuenta creada exitosamente"


@router.post("/confirm-account", dependencies=[Depends(rate_limited("confirm-account"))])
def confirm_account(payload: TokenRequest, request: Request) -> str:
    errors = FieldErrors()
    errors.check(is_token(payload.token), "token", "Token no válido", value=payload.token)
    errors.raise_if_any()

    with connect(_cfg(request).DB_DSN) as conn:
        flow.confirm_account(conn, str(payload.token))
    return "Cuenta confirmada exitosamente"


@router.post("/login")
def login(payload: LoginRequest, request: Request) -> str:
    errors = FieldErrors()
    errors.check(is_email(payload.email), "email", "El email no es válido", value=payload.email)
    errors.check(not is_blank(payload.password), "password", "La contraseña es obligatoria")
    errors.raise_if_any()

    cfg = _cfg(request)
    with connect(cfg.DB_DSN) as conn:
        return flow.login(conn, cfg, email=str(payload.email), password=str(payload.password))


@router.post("/forgot-password")
def forgot_password(payload: EmailRequest, request: Request, background_tasks: BackgroundTasks) -> str:
    errors = FieldErrors()
    errors.check(is_email(payload.email), "email", "El email no es válido", value=payload.email)
    errors.raise_if_any()

    cfg = _cfg(request)
    with connect(cfg.DB_DSN) as conn:
        email_id = flow.request_password_reset(conn, cfg, email=str(payload.email))

    _schedule_delivery(request, background_tasks, email_id)
    return "Revisa tu email para instrucciones"


@router.post("/validate-token", dependencies=[Depends(rate_limited("validate-token"))])
def validate_token(payload: TokenRequest, request: Request) -> str:
    errors = FieldErrors()
    errors.check(is_token(payload.token), "token", "Token no válido", value=payload.token)
    errors.raise_if_any()

    with connect(_cfg(request).DB_DSN) as conn:
        flow.validate_token(conn, str(payload.token))
    return "Token válido, asigna un nuevo password"


@router.post("/reset-password/{token}", dependencies=[Depends(rate_limited("reset-password"))])
def reset_password(token: str, payload: PasswordRequest, request: Request) -> str:
    errors = FieldErrors()
    errors.check(is_token(token), "token", "Token no válido", value=token, location="params")
    errors.check(has_min_length(payload.password, 8), "password", "La contraseña debe tener al menos 8 caracteres")
    errors.raise_if_any()

    with connect(_cfg(request).DB_DSN) as conn:
        flow.reset_password_with_token(conn, token, str(payload.password))
    return "El password se modificó correctamente"


# -----------------------------
# Authenticated
# -----------------------------


@router.get("/user")
def get_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user


@router.put("/user")
def update_user(
    payload: UpdateProfileRequest,
    request: Request,
    user: Dict[str, Any] = Depends(get_current_user),
) -> str:
    errors = FieldErrors()
    errors.check(not is_blank(payload.name), "name", "El nombre es obligatorio", value=payload.name)
    errors.check(is_email(payload.email), "email", "El email no es válido", value=payload.email)
    errors.raise_if_any()

    with connect(_cfg(request).DB_DSN) as conn:
        flow.update_profile(conn, int(user["id"]), name=str(payload.name).strip(), email=str(payload.email))
    return "Perfil actualizado correctamente"


@router.post("/update-password")
def update_password(
    payload: UpdatePasswordRequest,
    request: Request,
    user: Dict[str, Any] = Depends(get_current_user),
) -> str:
    errors = FieldErrors()
    errors.check(not is_blank(payload.current_password), "current_password", "La contraseña actual no puede ir vacía")
    errors.check(has_min_length(payload.password, 8), "password", "La contraseña nueva debe tener al menos 8 caracteres")
    errors.raise_if_any()

    with connect(_cfg(request).DB_DSN) as conn:
        flow.change_password(
            conn,
            int(user["id"]),
            current_password=str(payload.current_password),
            password=str(payload.password),
        )
    return "El password se modificó correctamente"


@router.post("/check-password")
def check_password(
    payload: PasswordRequest,
    request: Request,
    user: Dict[str, Any] = Depends(get_current_user),
) -> str:
    errors = FieldErrors()
    errors.check(not is_blank(payload.password), "password", "La contraseña actual no puede ir vacía")
    errors.raise_if_any()

    with connect(_cfg(request).DB_DSN) as conn:
        flow.check_current_password(conn, int(user["id"]), password=str(payload.password))
    return "Password Correcto"
