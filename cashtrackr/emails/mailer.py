"""Email transports.

`SmtpMailer` is used whenever MAIL_HOST is configured. Without it, development builds
print messages to stdout (`ConsoleMailer`); production refuses to start.

Tests inject their own recording mailer into `create_app`.
"""

from __future__ import annotations

import smtplib
import ssl
from email.message import EmailMessage

from cashtrackr.config import Config

from .templates import OutgoingEmail


def _debug(msg: str) -> None:
    print(f"[mail] {msg}")


class Mailer:
    def send(self, email: OutgoingEmail) -> None:
        raise NotImplementedError


class SmtpMailer(Mailer):
    def __init__(self, cfg: Config):
        if not cfg.MAIL_HOST:
            raise RuntimeError("MAIL_HOST is not configured")
        self.cfg = cfg

    def _build_message(self, email: OutgoingEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = email.subject
        msg["From"] = self.cfg.MAIL_FROM
        msg["To"] = email.recipient
        msg.set_content(email.text or "")
        if email.html:
            msg.add_alternative(email.html, subtype="html")
        return msg

    def send(self, email: OutgoingEmail) -> None:
        cfg = self.cfg
        msg = self._build_message(email)

        if cfg.MAIL_USE_SSL:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(cfg.MAIL_HOST, cfg.MAIL_PORT, context=context, timeout=cfg.MAIL_TIMEOUT_SECONDS) as smtp:
                smtp.ehlo()
                if cfg.MAIL_USERNAME:
                    smtp.login(cfg.MAIL_USERNAME, cfg.MAIL_PASSWORD or "")
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(cfg.MAIL_HOST, cfg.MAIL_PORT, timeout=cfg.MAIL_TIMEOUT_SECONDS) as smtp:
                smtp.ehlo()
                if cfg.MAIL_USE_TLS:
                    smtp.starttls(context=ssl.create_default_context())
                    smtp.ehlo()
                if cfg.MAIL_USERNAME:
                    smtp.login(cfg.MAIL_USERNAME, cfg.MAIL_PASSWORD or "")
                smtp.send_message(msg)

        _debug(f"Sent template={email.template} to={email.recipient}")


class ConsoleMailer(Mailer):
    """Development transport: prints the plain-text body instead of sending it."""

    def send(self, email: OutgoingEmail) -> None:
        _debug(f"(console) to={email.recipient} subject={email.subject}")
        print(email.text)


def build_mailer(cfg: Config) -> Mailer:
    if cfg.MAIL_HOST:
        return SmtpMailer(cfg)
    if cfg.is_production:
        raise RuntimeError("MAIL_HOST must be set in production")
    _debug("MAIL_HOST not configured; printing emails to stdout")
    return ConsoleMailer()
