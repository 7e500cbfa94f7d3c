"""
Absence Service Layer

Orchestrates the absence workflow around the pure validator and the leave
balance store:

    create:  read contract -> read/initialize balance -> read absences
             -> validate -> insert (pending) -> notify employer (detached)
    approve: pending -> approved -> consume vacation days -> cancel planned
             shifts -> notify employee (detached)
    reject:  pending -> rejected -> notify employee (detached)
    cancel:  pending/approved -> deleted -> restore vacation days

The overlap and balance checks are read-then-write with no lock spanning the
request, so two concurrent requests can both pass them. On PostgreSQL the
absences_no_overlap exclusion constraint rejects the second overlapping insert;
concurrent vacation requests can still overdraw a balance.

Balance updates, shift cancellation and notifications run after the status
change is committed. Their failures are logged and never undo it; a failed
balance update leaves an inconsistency to reconcile by hand.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from fastapi import BackgroundTasks
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.exceptions import (
    AbsenceOverlapError,
    AbsenceValidationError,
    AccessDeniedError,
    AppException,
    InvalidTransitionError,
    LeaveBalanceConflictError,
    NotFoundError,
    PersistenceError,
)
from app.core.security import sanitize_text
from app.database import SessionLocal
from app.models.absence import (
    ACTIVE_STATUSES,
    OVERLAP_CONSTRAINT_NAME,
    Absence,
    AbsenceStatus,
    AbsenceType,
)
from app.models.contract import Contract
from app.schemas.absence import AbsenceCandidate, AbsenceCreate, AbsenceValidationResponse
from app.schemas.leave import LeaveBalanceSnapshot
from app.services.absence_validator import validate_absence_request
from app.services.contract_service import active_employee_ids, employer_has_employee, get_active_contract
from app.services.dispatch import dispatch_detached, run_detached
from app.services.leave_balance_service import LeaveBalanceService
from app.services.leave_rules import (
    calculate_acquired_days,
    calculate_justification_due_date,
    count_business_days,
    get_leave_year,
    get_leave_year_start_date,
)
from app.services.notification import get_profile_name, notify_absence_requested, notify_absence_resolved
from app.services.shift_service import cancel_planned_shifts

logger = logging.getLogger(__name__)

# Employer decisions. Cancellation (a delete) is the employee's and is handled separately.
_TRANSITIONS = {
    AbsenceStatus.PENDING: frozenset({AbsenceStatus.APPROVED, AbsenceStatus.REJECTED}),
    AbsenceStatus.APPROVED: frozenset(),
    AbsenceStatus.REJECTED: frozenset(),
}
_CANCELLABLE = frozenset({AbsenceStatus.PENDING, AbsenceStatus.APPROVED})


def _active_statuses() -> List[str]:
    return [status.value for status in ACTIVE_STATUSES]


# ============================================================================
# Queries
# ============================================================================

def get_absence(db: Session, absence_id: int) -> Absence:
    absence = db.query(Absence).filter(Absence.id == absence_id).first()
    if not absence:
        raise NotFoundError("Absence not found")
    return absence


def list_absences_for_employee(db: Session, employee_id: int) -> List[Absence]:
    return db.query(Absence).filter(
        Absence.employee_id == employee_id
    ).order_by(Absence.created_at.desc(), Absence.id.desc()).all()


def list_absences_for_employer(
    db: Session,
    employer_id: int,
    status: Optional[AbsenceStatus] = None
) -> List[Absence]:
    """
    Absences tied to the employer's contracts, plus contract-less absences of
    employees holding an active contract with the employer.
    """
    owned_contract_ids = select(Contract.id).where(Contract.employer_id == employer_id)
    employee_ids = active_employee_ids(db, employer_id)
    query = db.query(Absence).filter(or_(
        Absence.contract_id.in_(owned_contract_ids),
        and_(Absence.contract_id.is_(None), Absence.employee_id.in_(employee_ids))
    ))
    if status is not None:
        query = query.filter(Absence.status == status.value)
    return query.order_by(Absence.created_at.desc(), Absence.id.desc()).all()


def _existing_absences(db: Session, employee_id: int) -> List[Absence]:
    return db.query(Absence).filter(
        Absence.employee_id == employee_id,
        Absence.status.in_(_active_statuses())
    ).all()


def _candidate(employee_id: int, data: AbsenceCreate) -> AbsenceCandidate:
    return AbsenceCandidate(
        employee_id=employee_id,
        absence_type=data.absence_type,
        start_date=data.start_date,
        end_date=data.end_date,
        family_event_type=data.family_event_type
    )


def _resolve_contract(db: Session, employee_id: int, contract_id: Optional[int]) -> Optional[Contract]:
    contract = get_active_contract(db, employee_id, contract_id)
    if contract_id is not None and contract is None:
        raise NotFoundError("Contract not found")
    return contract


# ============================================================================
# Creation
# ============================================================================

def _get_or_initialize_balance(db: Session, contract: Contract, leave_year: str, as_of: date):
    service = LeaveBalanceService(db)
    balance = service.get_leave_balance(contract.id, leave_year)
    if balance is not None:
        return balance
    try:
        return service.initialize_leave_balance(
            contract.id,
            contract.employee_id,
            contract.employer_id,
            leave_year,
            contract.start_date,
            contract.weekly_hours,
            as_of=as_of
        )
    except LeaveBalanceConflictError:
        # Another request created it in between
        return service.get_leave_balance(contract.id, leave_year)


def _notify_requested(db: Session, employer_id: int, employee_id: int, absence_type: str, start_date: date, end_date: date):
    employee_name = get_profile_name(db, employee_id)
    return notify_absence_requested(db, employer_id, employee_name, absence_type, start_date, end_date)


def create_absence(
    db: Session,
    employee_id: int,
    data: AbsenceCreate,
    background_tasks: Optional[BackgroundTasks] = None,
    session_factory: Optional[sessionmaker] = None,
    today: Optional[date] = None
) -> Tuple[Absence, List[str]]:
    """
    Declare an absence for `employee_id`.

    Returns:
        The pending absence and the validator warnings.

    Raises:
        AbsenceValidationError: a leave rule is broken.
        AbsenceOverlapError: the database refused an overlapping absence.
        PersistenceError: any other storage failure.
    """
    today = today or date.today()
    contract = _resolve_contract(db, employee_id, data.contract_id)

    leave_year = None
    balance = None
    if data.absence_type == AbsenceType.VACATION:
        leave_year = get_leave_year(data.start_date)
        if contract is not None and data.start_date <= data.end_date:
            balance = _get_or_initialize_balance(db, contract, leave_year, today)

    result = validate_absence_request(
        _candidate(employee_id, data),
        _existing_absences(db, employee_id),
        balance,
        today=today
    )
    if not result.valid:
        logger.info(
            f"Absence request refused for employee {employee_id}: "
            f"{[issue.code for issue in result.errors]}"
        )
        raise AbsenceValidationError(result.errors, result.warnings)

    is_sick = data.absence_type == AbsenceType.SICK
    absence = Absence(
        employee_id=employee_id,
        contract_id=contract.id if contract else None,
        absence_type=data.absence_type.value,
        start_date=data.start_date,
        end_date=data.end_date,
        reason=sanitize_text(data.reason),
        justification_url=data.justification_url,
        status=AbsenceStatus.PENDING.value,
        business_days_count=count_business_days(data.start_date, data.end_date),
        justification_due_date=calculate_justification_due_date(data.start_date) if is_sick else None,
        family_event_type=data.family_event_type if data.absence_type == AbsenceType.FAMILY_EVENT else None,
        leave_year=leave_year
    )
    db.add(absence)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if OVERLAP_CONSTRAINT_NAME in str(e.orig):
            raise AbsenceOverlapError() from e
        logger.error(f"Absence insert rejected by the database: {e}")
        raise PersistenceError("Could not create absence") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Absence insert failed: {e}")
        raise PersistenceError("Could not create absence") from e
    db.refresh(absence)
    logger.info(f"Absence {absence.id} ({absence.absence_type}) declared by employee {employee_id}")

    if contract is not None:
        dispatch_detached(
            background_tasks,
            session_factory or SessionLocal,
            _notify_requested,
            contract.employer_id,
            employee_id,
            absence.absence_type,
            absence.start_date,
            absence.end_date
        )
    else:
        logger.info(f"Absence {absence.id} has no contract; no employer notified")

    return absence, result.warnings


def preview_absence(
    db: Session,
    employee_id: int,
    data: AbsenceCreate,
    today: Optional[date] = None
) -> AbsenceValidationResponse:
    """
    Run the validator without writing anything. A missing balance is replaced by
    what initialization would produce.
    """
    today = today or date.today()
    contract = _resolve_contract(db, employee_id, data.contract_id)

    leave_year = None
    balance = None
    if data.absence_type == AbsenceType.VACATION:
        leave_year = get_leave_year(data.start_date)
        if contract is not None:
            balance = LeaveBalanceService(db).get_leave_balance(contract.id, leave_year)
            if balance is None:
                balance = LeaveBalanceSnapshot(acquired_days=calculate_acquired_days(
                    contract.start_date,
                    contract.weekly_hours,
                    get_leave_year_start_date(leave_year),
                    today
                ))

    result = validate_absence_request(
        _candidate(employee_id, data),
        _existing_absences(db, employee_id),
        balance,
        today=today
    )
    return AbsenceValidationResponse(
        valid=result.valid,
        errors=[] if result.valid else result.errors,
        warnings=result.warnings,
        business_days_count=count_business_days(data.start_date, data.end_date),
        leave_year=leave_year
    )


# ============================================================================
# Status changes
# ============================================================================

def _consume_leave(db: Session, absence_id: int, contract_id: Optional[int], leave_year: Optional[str], days: Optional[int]):
    if not (contract_id and leave_year and days):
        return
    try:
        LeaveBalanceService(db).add_taken_days(contract_id, leave_year, days)
    except AppException as e:
        logger.error(
            f"Absence {absence_id} approved but {days} day(s) could not be taken from "
            f"contract {contract_id} ({leave_year}); balance needs reconciliation: {e.message}",
            exc_info=True
        )


def _restore_leave(db: Session, absence_id: int, contract_id: Optional[int], leave_year: Optional[str], days: Optional[int]):
    if not (contract_id and leave_year and days):
        return
    try:
        LeaveBalanceService(db).restore_taken_days(contract_id, leave_year, days)
    except AppException as e:
        logger.error(
            f"Absence {absence_id} cancelled but {days} day(s) could not be restored on "
            f"contract {contract_id} ({leave_year}); balance needs reconciliation: {e.message}",
            exc_info=True
        )


def _employer_owns_absence(db: Session, absence: Absence, employer_id: int) -> bool:
    if absence.contract_id is None:
        return employer_has_employee(db, employer_id, absence.employee_id)
    contract = db.get(Contract, absence.contract_id)
    return contract is not None and contract.employer_id == employer_id


def update_absence_status(
    db: Session,
    absence_id: int,
    status: AbsenceStatus,
    employer_id: int,
    background_tasks: Optional[BackgroundTasks] = None,
    session_factory: Optional[sessionmaker] = None
) -> Absence:
    """
    Employer decision on a pending absence: approve or reject.

    Raises:
        NotFoundError: no such absence.
        AccessDeniedError: the absence is tied to another employer's contract, or
            (contract-less) the employer has no active contract with the employee.
        InvalidTransitionError: the absence is not pending.
    """
    session_factory = session_factory or SessionLocal
    absence = get_absence(db, absence_id)
    if not _employer_owns_absence(db, absence, employer_id):
        raise AccessDeniedError("This absence does not belong to one of your employees")

    current = AbsenceStatus(absence.status)
    if status not in _TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, status.value)

    absence.status = status.value
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Status update failed for absence {absence_id}: {e}")
        raise PersistenceError("Could not update absence") from e
    db.refresh(absence)
    logger.info(f"Absence {absence_id} {status.value} by employer {employer_id}")

    employee_id = absence.employee_id
    start_date, end_date = absence.start_date, absence.end_date

    if status == AbsenceStatus.APPROVED:
        if absence.absence_type == AbsenceType.VACATION.value:
            _consume_leave(db, absence_id, absence.contract_id, absence.leave_year, absence.business_days_count)
        run_detached(session_factory, cancel_planned_shifts, employee_id, start_date, end_date)

    dispatch_detached(
        background_tasks,
        session_factory,
        notify_absence_resolved,
        employee_id,
        status.value,
        start_date,
        end_date
    )
    return absence


def cancel_absence(db: Session, absence_id: int, employee_id: int) -> None:
    """
    Employee withdraws their own pending or approved absence. The row is deleted;
    vacation days of an approved absence go back to the balance.
    """
    absence = get_absence(db, absence_id)
    if absence.employee_id != employee_id:
        raise AccessDeniedError("You can only cancel your own absences")

    current = AbsenceStatus(absence.status)
    if current not in _CANCELLABLE:
        raise InvalidTransitionError(current.value, "cancelled")

    was_approved_vacation = (
        current == AbsenceStatus.APPROVED and absence.absence_type == AbsenceType.VACATION.value
    )
    contract_id, leave_year, days = absence.contract_id, absence.leave_year, absence.business_days_count

    db.delete(absence)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Cancellation failed for absence {absence_id}: {e}")
        raise PersistenceError("Could not cancel absence") from e
    logger.info(f"Absence {absence_id} cancelled by employee {employee_id}")

    if was_approved_vacation:
        _restore_leave(db, absence_id, contract_id, leave_year, days)
