"""Input validation gate.

Handlers collect every failing field into a `FieldErrors` before touching the
database and stop with a single 400 `{"errors": [...]}`. One entry per field (the
first rule it fails), in the order the fields are checked.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Sequence

from email_validator import EmailNotValidError, validate_email

from cashtrackr.budgets.crud import normalize_amount
from cashtrackr.errors import ValidationFailed


_NUMERIC_RE = re.compile(r"^[+-]?([0-9]*[.])?[0-9]+$")


class FieldErrors:
    def __init__(self) -> None:
        self.errors: List[Dict[str, Any]] = []

    def add(self, path: str, msg: str, *, value: Any = None, location: str = "body") -> None:
        err: Dict[str, Any] = {"type": "field", "msg": msg, "path": path, "location": location}
        if value is not None:
            err["value"] = value
        self.errors.append(err)

    def check(self, ok: bool, path: str, msg: str, *, value: Any = None, location: str = "body") -> bool:
        if not ok:
            self.add(path, msg, value=value, location=location)
        return ok

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationFailed(self.errors)


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_email(value: Any) -> bool:
    """Syntax only; no DNS lookup."""
    if not isinstance(value, str) or not value:
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def has_min_length(value: Any, n: int) -> bool:
    return isinstance(value, str) and len(value) >= n


def is_token(value: Any) -> bool:
    """6-digit confirmation / reset code."""
    return isinstance(value, str) and len(value) == 6 and value.isdigit()


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == value and value not in (float("inf"), float("-inf"))
    return isinstance(value, str) and _NUMERIC_RE.match(value.strip()) is not None


def check_amount(errors: FieldErrors, value: Any, *, required_msg: str) -> None:
    """Amount rules, applied to the value as it will be stored (rounded to cents)."""
    if is_blank(value):
        errors.add("amount", required_msg, value=value)
        return
    if not is_numeric(value):
        errors.add("amount", "Cantidad no es un número válido", value=value)
        return
    try:
        stored = Decimal(normalize_amount(value))
    except InvalidOperation:
        errors.add("amount", "Cantidad no es un número válido", value=value)
        return
    if stored <= 0:
        errors.add("amount", "El monto debe ser un número mayor que cero", value=value)


def parse_id(raw: str, *, path: str) -> int:
    """Positive integer path parameter, or 400 "ID no válido"."""
    s = (raw or "").strip()
    if s.isdigit() and int(s) > 0:
        return int(s)
    errors = FieldErrors()
    errors.add(path, "ID no válido", value=raw, location="params")
    raise ValidationFailed(errors.errors)


def from_request_validation(details: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Map FastAPI/pydantic error details (malformed JSON, wrong types) to our shape."""
    out: List[Dict[str, Any]] = []
    for d in details:
        loc = [str(x) for x in (d.get("loc") or ())]
        location = loc[0] if loc else "body"
        path = ".".join(loc[1:]) if len(loc) > 1 else ""
        out.append({"type": "field", "msg": str(d.get("msg") or "Valor no válido"), "path": path, "location": location})
    return out
