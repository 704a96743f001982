"""Existence + ownership gates for budget and expense routes.

Each gate depends on the previous one, so the order per request is always:

    authenticate -> budget id (400) -> budget exists (404) -> owner (401)
                 -> expense id (400) -> expense exists (404) -> same budget (403)

A missing resource is therefore never reported as an ownership failure.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, Request

from cashtrackr.api.validation import parse_id
from cashtrackr.auth import get_current_user
from cashtrackr.db import connect
from cashtrackr.errors import Forbidden, Internal, NotFound, Unauthorized

from .crud import get_budget_by_id, get_expense_by_id


def _debug(msg: str) -> None:
    print(f"[budgets] {msg}")


def check_budget_access(user: Dict[str, Any], budget: Dict[str, Any]) -> None:
    if int(budget["user_id"]) != int(user["id"]):
        raise Unauthorized("Acción no válida")


def check_expense_in_budget(budget: Dict[str, Any], expense: Dict[str, Any]) -> None:
    if int(expense["budget_id"]) != int(budget["id"]):
        raise Forbidden("Acción no válida")


def get_budget(
    budget_id: str,
    request: Request,
    _user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    bid = parse_id(budget_id, path="budget_id")
    cfg = request.app.state.cfg
    try:
        with connect(cfg.DB_DSN) as conn:
            budget = get_budget_by_id(conn, bid)
    except Exception as e:
        _debug(f"load budget_id={bid} failed: {e}")
        raise Internal("Error al obtener el presupuesto") from e
    if budget is None:
        raise NotFound("Presupuesto no encontrado")
    return budget


def get_owned_budget(
    budget: Dict[str, Any] = Depends(get_budget),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    check_budget_access(user, budget)
    return budget


def get_budget_expense(
    expense_id: str,
    request: Request,
    budget: Dict[str, Any] = Depends(get_owned_budget),
) -> Dict[str, Any]:
    eid = parse_id(expense_id, path="expense_id")
    cfg = request.app.state.cfg
    try:
        with connect(cfg.DB_DSN) as conn:
            expense = get_expense_by_id(conn, eid)
    except Exception as e:
        _debug(f"load expense_id={eid} failed: {e}")
        raise Internal("Error al obtener el gasto") from e
    if expense is None:
        raise NotFound("Gasto no encontrado")
    check_expense_in_budget(budget, expense)
    return expense
