import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AppException, NotFoundError, PersistenceError
from app.models.contract import Contract, ContractStatus
from app.models.user import User, UserRole
from app.schemas.contract import ContractCreate
from app.services.leave_balance_service import LeaveBalanceService
from app.services.leave_rules import (
    calculate_acquired_from_months,
    calculate_default_months_worked,
    get_leave_year,
)

logger = logging.getLogger(__name__)


def get_active_contract(db: Session, employee_id: int, contract_id: Optional[int] = None) -> Optional[Contract]:
    """The employee's active contract, the given one if specified, else the oldest."""
    query = db.query(Contract).filter(
        Contract.employee_id == employee_id,
        Contract.status == ContractStatus.ACTIVE.value
    )
    if contract_id is not None:
        query = query.filter(Contract.id == contract_id)
    return query.order_by(Contract.id).first()


def employer_has_employee(db: Session, employer_id: int, employee_id: int) -> bool:
    return db.query(Contract.id).filter(
        Contract.employer_id == employer_id,
        Contract.employee_id == employee_id,
        Contract.status == ContractStatus.ACTIVE.value
    ).first() is not None


def active_employee_ids(db: Session, employer_id: int) -> List[int]:
    rows = db.query(Contract.employee_id).filter(
        Contract.employer_id == employer_id,
        Contract.status == ContractStatus.ACTIVE.value
    ).distinct().all()
    return [row[0] for row in rows]


def list_contracts_for_user(db: Session, user: User) -> List[Contract]:
    column = Contract.employer_id if user.role == UserRole.EMPLOYER else Contract.employee_id
    return db.query(Contract).filter(column == user.id).order_by(Contract.start_date.desc()).all()


def create_contract(
    db: Session,
    employer_id: int,
    data: ContractCreate,
    today: Optional[date] = None
) -> Contract:
    """
    Register a contract between an employer and a caregiver.

    When leave history is reported (months worked or days already taken), the
    balance of the current leave year is seeded from it. Missing months worked are
    estimated from the contract start date. That step is best effort: the contract
    stands even if it fails.
    """
    employee = db.query(User).filter(User.id == data.employee_id).first()
    if not employee or employee.role != UserRole.EMPLOYEE:
        raise NotFoundError("Employee not found")

    if employer_has_employee(db, employer_id, data.employee_id):
        raise AppException(
            message="An active contract already exists with this caregiver",
            status_code=409,
            error_code="CONTRACT_EXISTS"
        )

    contract = Contract(
        employer_id=employer_id,
        employee_id=data.employee_id,
        contract_type=data.contract_type.value,
        start_date=data.start_date,
        end_date=data.end_date,
        weekly_hours=data.weekly_hours,
        hourly_rate=data.hourly_rate,
        status=ContractStatus.ACTIVE.value
    )
    db.add(contract)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Contract creation failed: {e}")
        raise PersistenceError("Could not create contract") from e
    db.refresh(contract)

    if data.initial_months_worked or data.initial_taken_days:
        today = today or date.today()
        months_worked = data.initial_months_worked
        if months_worked is None:
            months_worked = calculate_default_months_worked(data.start_date, today)
        try:
            LeaveBalanceService(db).initialize_leave_balance_with_override(
                contract.id,
                data.employee_id,
                employer_id,
                get_leave_year(today),
                calculate_acquired_from_months(months_worked),
                data.initial_taken_days or 0.0
            )
        except Exception as e:
            # Non-blocking: the contract exists even if the carry-in fails
            logger.error(f"Leave history carry-in failed for contract {contract.id}: {e}", exc_info=True)

    return contract
