from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from cashtrackr.auth import get_current_user
from cashtrackr.budgets import crud
from cashtrackr.budgets.deps import get_budget_expense, get_owned_budget
from cashtrackr.db import connect
from cashtrackr.errors import Internal

from .validation import FieldErrors, check_amount, is_blank


def _debug(msg: str) -> None:
    print(f"[budgets] {msg}")


router = APIRouter(prefix="/budgets", tags=["budgets"])


class BudgetRequest(BaseModel):
    name: Optional[str] = None
    amount: Any = None


class ExpenseRequest(BaseModel):
    name: Optional[str] = None
    amount: Any = None


def _check_budget_input(payload: BudgetRequest) -> None:
    errors = FieldErrors()
    errors.check(not is_blank(payload.name), "name", "Nombre del presupuesto es obligatorio", value=payload.name)
    check_amount(errors, payload.amount, required_msg="Monto del presupuesto es obligatorio")
    errors.raise_if_any()


def _check_expense_input(payload: ExpenseRequest) -> None:
    errors = FieldErrors()
    errors.check(not is_blank(payload.name), "name", "Nombre del gasto es obligatorio", value=payload.name)
    check_amount(errors, payload.amount, required_msg="Monto del gasto es obligatorio")
    errors.raise_if_any()


# -----------------------------
# Budgets
# -----------------------------


@router.get("")
def list_budgets(request: Request, user: Dict[str, Any] = Depends(get_current_user)) -> List[Dict[str, Any]]:
    try:
        with connect(request.app.state.cfg.DB_DSN) as conn:
            return crud.list_budgets(conn, int(user["id"]))
    except Exception as e:
        _debug(f"list failed user_id={user['id']}: {e}")
        raise Internal("Error al obtener los presupuestos") from e


@router.post("", status_code=201)
def create_budget(
    payload: BudgetRequest,
    request: Request,
    user: Dict[str, Any] = Depends(get_current_user),
) -> str:
    _check_budget_input(payload)
    try:
        with connect(request.app.state.cfg.DB_DSN) as conn:
            crud.create_budget(conn, user_id=int(user["id"]), name=str(payload.name).strip(), amount=payload.amount)
    except Exception as e:
        _debug(f"create failed user_id={user['id']}: {e}")
        raise Internal("Error al crear el presupuesto") from e
    return "Presupuesto creado exitosamente"


@router.get("/{budget_id}")
def get_budget(request: Request, budget: Dict[str, Any] = Depends(get_owned_budget)) -> Dict[str, Any]:
    with connect(request.app.state.cfg.DB_DSN) as conn:
        return crud.get_budget_with_expenses(conn, int(budget["id"])) or budget


@router.put("/{budget_id}")
def update_budget(
    payload: BudgetRequest,
    request: Request,
    budget: Dict[str, Any] = Depends(get_owned_budget),
) -> str:
    _check_budget_input(payload)
    with connect(request.app.state.cfg.DB_DSN) as conn:
        crud.update_budget(conn, int(budget["id"]), name=str(payload.name).strip(), amount=payload.amount)
    return "Presupuesto actualizado exitosamente"


@router.delete("/{budget_id}")
def delete_budget(request: Request, budget: Dict[str, Any] = Depends(get_owned_budget)) -> str:
    with connect(request.app.state.cfg.DB_DSN) as conn:
        crud.delete_budget(conn, int(budget["id"]))
    return "Presupuesto eliminado exitosamente"


# -----------------------------
# Expenses (nested under their budget)
# -----------------------------


@router.post("/{budget_id}/expenses", status_code=201)
def create_expense(
    payload: ExpenseRequest,
    request: Request,
    budget: Dict[str, Any] = Depends(get_owned_budget),
) -> str:
    _check_expense_input(payload)
    try:
        with connect(request.app.state.cfg.DB_DSN) as conn:
            crud.create_expense(conn, budget_id=int(budget["id"]), name=str(payload.name).strip(), amount=payload.amount)
    except Exception as e:
        _debug(f"create expense failed budget_id={budget['id']}: {e}")
        raise Internal("Error al crear el gasto") from e
    return "Gasto creado con éxito"


@router.get("/{budget_id}/expenses/{expense_id}")
def get_expense(expense: Dict[str, Any] = Depends(get_budget_expense)) -> Dict[str, Any]:
    return expense


@router.put("/{budget_id}/expenses/{expense_id}")
def update_expense(
    payload: ExpenseRequest,
    request: Request,
    expense: Dict[str, Any] = Depends(get_budget_expense),
) -> str:
    _check_expense_input(payload)
    with connect(request.app.state.cfg.DB_DSN) as conn:
        crud.update_expense(conn, int(expense["id"]), name=str(payload.name).strip(), amount=payload.amount)
    return "Gasto actualizado con éxito"


@router.delete("/{budget_id}/expenses/{expense_id}")
def delete_expense(request: Request, expense: Dict[str, Any] = Depends(get_budget_expense)) -> str:
    with connect(request.app.state.cfg.DB_DSN) as conn:
        crud.delete_expense(conn, int(expense["id"]))
    return "Gasto eliminado con éxito"
