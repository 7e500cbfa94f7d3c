from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.exceptions import AccessDeniedError, LeaveBalanceNotFoundError
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_employee, require_employer
from app.schemas.leave import LeaveBalanceResponse
from app.services.leave_balance_service import LeaveBalanceService

router = APIRouter(prefix="/leave-balances", tags=["leave-balances"])


@router.get("/me", response_model=List[LeaveBalanceResponse])
def my_leave_balances(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employee)
):
    return LeaveBalanceService(db).list_for_employee(current_user.id)


@router.get("/employer", response_model=List[LeaveBalanceResponse])
def employer_leave_balances(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employer)
):
    return LeaveBalanceService(db).list_for_employer(current_user.id)


@router.get("/{contract_id}/{leave_year}", response_model=LeaveBalanceResponse)
def get_leave_balance(
    contract_id: int,
    leave_year: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    balance = LeaveBalanceService(db).get_leave_balance(contract_id, leave_year)
    if balance is None:
        raise LeaveBalanceNotFoundError(contract_id, leave_year)
    if current_user.id not in (balance.employee_id, balance.employer_id):
        raise AccessDeniedError()
    return balance
