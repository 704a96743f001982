from __future__ import annotations

from dataclasses import dataclass, field
from html import escape
from typing import Any, Dict


CONFIRM_ACCOUNT = "confirm_account"
RESET_PASSWORD = "reset_password"

TEMPLATES = (CONFIRM_ACCOUNT, RESET_PASSWORD)


@dataclass(frozen=True)
class OutgoingEmail:
    template: str
    recipient: str
    subject: str
    text: str
    html: str
    context: Dict[str, Any] = field(default_factory=dict)


def render_email(template: str, recipient: str, context: Dict[str, Any], *, frontend_url: str) -> OutgoingEmail:
    """Render an auth email from its outbox template name and context (name, token)."""
    name = str(context.get("name") or "")
    token = str(context.get("token") or "")
    base = (frontend_url or "").rstrip("/")

    if template == CONFIRM_ACCOUNT:
        link = f"{base}/auth/confirm-account"
        subject = "CashTrackr - Confirma tu cuenta"
        text = (
            f"Hola {name}, has creado tu cuenta en CashTrackr.\n"
            f"Para confirmar tu cuenta visita {link}\n"
            f"e ingresa el código: {token}\n"
        )
        html = (
            f"<p>Hola {escape(name)}, has creado tu cuenta en CashTrackr.</p>"
            f"<p>Para confirmar tu cuenta, haz click en el siguiente enlace:</p>"
            f'<a href="{escape(link)}">Confirmar Cuenta</a>'
            f"<p>e ingresa el código: <b>{escape(token)}</b></p>"
        )
    elif template == RESET_PASSWORD:
        link = f"{base}/auth/new-password"
        subject = "CashTrackr - Restablece tu contraseña"
        text = (
            f"Hola {name}, has solicitado restablecer tu contraseña en CashTrackr.\n"
            f"Para restablecerla visita {link}\n"
            f"e ingresa el código: {token}\n"
        )
        html = (
            f"<p>Hola {escape(name)}, has solicitado restablecer tu contraseña en CashTrackr.</p>"
            f"<p>Para restablecer tu contraseña, haz click en el siguiente enlace:</p>"
            f'<a href="{escape(link)}">Restablecer Contraseña</a>'
            f"<p>e ingresa el código: <b>{escape(token)}</b></p>"
        )
    else:
        raise ValueError(f"unknown_email_template: {template}")

    return OutgoingEmail(
        template=template,
        recipient=recipient,
        subject=subject,
        text=text,
        html=html,
        context=dict(context),
    )
