"""
Leave Balance Service

Owns the paid-leave ledger: one row per (contract, leave year).

Architecture:
- Every read goes to the database; balances are never cached between calls.
- taken_days is only ever changed by single-statement UPDATEs
  (taken_days = taken_days + :days), so concurrent writers cannot lose an
  increment. Mutations on one (contract, leave year) are additionally
  serialized inside the process.
- Nothing here retries. Storage failures surface as PersistenceError.
"""
import threading
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.exceptions import LeaveBalanceConflictError, LeaveBalanceNotFoundError, PersistenceError
from app.models.leave_balance import LeaveBalance
from app.services.base import BaseService
from app.services.leave_rules import calculate_acquired_days, get_leave_year_start_date

# Fixed pool of lock stripes; two keys may share a stripe, one key always maps to the same one
_LOCK_STRIPES = 64
_balance_locks: Tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(_LOCK_STRIPES))


def _balance_lock(contract_id: int, leave_year: str) -> threading.Lock:
    return _balance_locks[hash((contract_id, leave_year)) % _LOCK_STRIPES]


class LeaveBalanceService(BaseService):

    def _query(self, contract_id: int, leave_year: str):
        return self.db.query(LeaveBalance).filter(
            LeaveBalance.contract_id == contract_id,
            LeaveBalance.leave_year == leave_year
        )

    def get_leave_balance(self, contract_id: int, leave_year: str) -> Optional[LeaveBalance]:
        try:
            return self._query(contract_id, leave_year).first()
        except SQLAlchemyError as e:
            self._logger.error(f"Leave balance lookup failed for contract {contract_id} ({leave_year}): {e}")
            raise PersistenceError("Could not read leave balance") from e

    def list_for_employee(self, employee_id: int) -> List[LeaveBalance]:
        try:
            return self.db.query(LeaveBalance).filter(
                LeaveBalance.employee_id == employee_id
            ).order_by(LeaveBalance.leave_year.desc()).all()
        except SQLAlchemyError as e:
            raise PersistenceError("Could not read leave balances") from e

    def list_for_employer(self, employer_id: int) -> List[LeaveBalance]:
        try:
            return self.db.query(LeaveBalance).filter(
                LeaveBalance.employer_id == employer_id
            ).order_by(LeaveBalance.leave_year.desc(), LeaveBalance.employee_id).all()
        except SQLAlchemyError as e:
            raise PersistenceError("Could not read leave balances") from e

    def _insert(self, balance: LeaveBalance) -> LeaveBalance:
        self.db.add(balance)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise LeaveBalanceConflictError(balance.contract_id, balance.leave_year) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Could not create leave balance") from e
        self.db.refresh(balance)
        return balance

    def initialize_leave_balance(
        self,
        contract_id: int,
        employee_id: int,
        employer_id: int,
        leave_year: str,
        contract_start_date: date,
        weekly_hours: float,
        as_of: Optional[date] = None
    ) -> LeaveBalance:
        """
        Create the ledger row from the standard accrual rule.

        Callers check `get_leave_balance` first; an existing row raises
        LeaveBalanceConflictError rather than being overwritten.
        """
        acquired = calculate_acquired_days(
            contract_start_date,
            weekly_hours,
            get_leave_year_start_date(leave_year),
            as_of or date.today()
        )
        balance = self._insert(LeaveBalance(
            contract_id=contract_id,
            employee_id=employee_id,
            employer_id=employer_id,
            leave_year=leave_year,
            acquired_days=acquired,
            taken_days=0.0,
            adjustment_days=0.0,
            is_manual_init=False
        ))
        self._logger.info(f"Initialized leave balance for contract {contract_id} ({leave_year}): {acquired} days acquired")
        return balance

    def initialize_leave_balance_with_override(
        self,
        contract_id: int,
        employee_id: int,
        employer_id: int,
        leave_year: str,
        acquired_days: float,
        taken_days: float
    ) -> Optional[LeaveBalance]:
        """
        Create the ledger row from figures reported at contract creation (prior history).
        Returns None without touching anything if a row already exists.
        """
        existing = self.get_leave_balance(contract_id, leave_year)
        if existing:
            self.log_warning(
                "Leave balance already exists, history carry-in ignored",
                contract_id=contract_id, leave_year=leave_year, existing_id=existing.id
            )
            return None

        return self._insert(LeaveBalance(
            contract_id=contract_id,
            employee_id=employee_id,
            employer_id=employer_id,
            leave_year=leave_year,
            acquired_days=acquired_days,
            taken_days=taken_days,
            adjustment_days=0.0,
            is_manual_init=True
        ))

    def add_taken_days(self, contract_id: int, leave_year: str, days: float) -> None:
        """Consume `days` from the balance. The row must exist."""
        if days <= 0:
            raise ValueError(f"days must be positive, got {days}")

        with _balance_lock(contract_id, leave_year):
            try:
                updated = self._query(contract_id, leave_year).update(
                    {
                        LeaveBalance.taken_days: LeaveBalance.taken_days + days,
                        LeaveBalance.updated_at: func.now(),
                    },
                    synchronize_session=False
                )
                if updated == 0:
                    self.db.rollback()
                    raise LeaveBalanceNotFoundError(contract_id, leave_year)
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                self._logger.error(f"Failed to add taken days on contract {contract_id} ({leave_year}): {e}")
                raise PersistenceError("Could not update leave balance") from e

    def restore_taken_days(self, contract_id: int, leave_year: str, days: float) -> None:
        """
        Give `days` back to the balance. taken_days never drops below zero;
        a restoration larger than what was taken is logged and clamped.
        """
        if days <= 0:
            raise ValueError(f"days must be positive, got {days}")

        with _balance_lock(contract_id, leave_year):
            try:
                current = self._query(contract_id, leave_year).with_entities(LeaveBalance.taken_days).scalar()
                if current is None:
                    self.db.rollback()
                    raise LeaveBalanceNotFoundError(contract_id, leave_year)
                if current < days:
                    self.log_warning(
                        "Restoring more leave days than taken, clamping at zero",
                        contract_id=contract_id, leave_year=leave_year, taken_days=current, restored=days
                    )

                self._query(contract_id, leave_year).update(
                    {
                        LeaveBalance.taken_days: case(
                            (LeaveBalance.taken_days < days, 0.0),
                            else_=LeaveBalance.taken_days - days
                        ),
                        LeaveBalance.updated_at: func.now(),
                    },
                    synchronize_session=False
                )
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                self._logger.error(f"Failed to restore taken days on contract {contract_id} ({leave_year}): {e}")
                raise PersistenceError("Could not update leave balance") from e
