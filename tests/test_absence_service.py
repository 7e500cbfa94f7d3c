from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.exceptions import (
    AbsenceOverlapError,
    AbsenceValidationError,
    AccessDeniedError,
    NotFoundError,
    PersistenceError,
)
from app.models.absence import Absence, AbsenceStatus, AbsenceType
from app.models.leave_balance import LeaveBalance
from app.models.notification import Notification
from app.schemas.absence import AbsenceCreate
from app.services import absence_service
from app.services.leave_balance_service import LeaveBalanceService

TODAY = date(2024, 6, 15)


def _request(absence_type, start, end, **extra):
    return AbsenceCreate(absence_type=absence_type, start_date=start, end_date=end, **extra)


def test_create_returns_validator_warnings(db_session, employee, contract, session_factory):
    absence, warnings = absence_service.create_absence(
        db_session,
        employee.id,
        _request(AbsenceType.VACATION, date(2024, 11, 4), date(2024, 11, 22)),
        session_factory=session_factory,
        today=date(2025, 6, 1)
    )
    assert absence.business_days_count == 14
    assert absence.leave_year == "2024-2025"
    assert len(warnings) == 1


def test_lazy_balance_uses_accrual_as_of_today(db_session, employee, contract, session_factory):
    # Only June 2024 elapsed in the leave year: one month, 2.5 days rounded to 3
    absence_service.create_absence(
        db_session,
        employee.id,
        _request(AbsenceType.VACATION, date(2024, 7, 8), date(2024, 7, 10)),
        session_factory=session_factory,
        today=date(2024, 6, 30)
    )
    balance = LeaveBalanceService(db_session).get_leave_balance(contract.id, "2024-2025")
    assert balance.acquired_days == 3.0


def test_vacation_without_contract_has_no_balance(db_session, employee, session_factory):
    with pytest.raises(AbsenceValidationError) as exc_info:
        absence_service.create_absence(
            db_session,
            employee.id,
            _request(AbsenceType.VACATION, date(2024, 7, 8), date(2024, 7, 10)),
            session_factory=session_factory,
            today=TODAY
        )
    assert [issue.code for issue in exc_info.value.issues] == ["no_balance"]
    assert exc_info.value.status_code == 422


def test_unknown_contract(db_session, employee, contract, session_factory):
    with pytest.raises(NotFoundError):
        absence_service.create_absence(
            db_session,
            employee.id,
            _request(AbsenceType.TRAINING, date(2024, 7, 8), date(2024, 7, 10), contract_id=contract.id + 100),
            session_factory=session_factory,
            today=TODAY
        )


def test_family_event_type_is_stored(db_session, employee, contract, session_factory):
    absence, _ = absence_service.create_absence(
        db_session,
        employee.id,
        _request(AbsenceType.FAMILY_EVENT, date(2024, 7, 8), date(2024, 7, 9), family_event_type="marriage"),
        session_factory=session_factory,
        today=TODAY
    )
    assert absence.family_event_type == "marriage"
    assert absence.justification_due_date is None


def test_database_overlap_constraint_is_translated(db_session, employee, contract, session_factory, monkeypatch):
    def refuse():
        raise IntegrityError("INSERT INTO absences", {}, Exception('violates exclusion constraint "absences_no_overlap"'))

    monkeypatch.setattr(db_session, "commit", refuse)
    with pytest.raises(AbsenceOverlapError) as exc_info:
        absence_service.create_absence(
            db_session,
            employee.id,
            _request(AbsenceType.TRAINING, date(2024, 7, 8), date(2024, 7, 10)),
            session_factory=session_factory,
            today=TODAY
        )
    assert exc_info.value.status_code == 409
    assert exc_info.value.message == "An absence is already declared for this period"


def test_storage_failure_is_typed(db_session, employee, contract, session_factory, monkeypatch):
    def fail():
        raise OperationalError("INSERT INTO absences", {}, Exception("connection lost"))

    monkeypatch.setattr(db_session, "commit", fail)
    with pytest.raises(PersistenceError) as exc_info:
        absence_service.create_absence(
            db_session,
            employee.id,
            _request(AbsenceType.TRAINING, date(2024, 7, 8), date(2024, 7, 10)),
            session_factory=session_factory,
            today=TODAY
        )
    assert not isinstance(exc_info.value, AbsenceOverlapError)


def test_notification_failure_does_not_block_approval(
    db_session, employee, employer, contract, session_factory, monkeypatch
):
    absence, _ = absence_service.create_absence(
        db_session,
        employee.id,
        _request(AbsenceType.TRAINING, date(2024, 7, 8), date(2024, 7, 10)),
        session_factory=session_factory,
        today=TODAY
    )

    def broken(*args, **kwargs):
        raise RuntimeError("mail relay down")

    monkeypatch.setattr(absence_service, "notify_absence_resolved", broken)
    updated = absence_service.update_absence_status(
        db_session, absence.id, AbsenceStatus.APPROVED, employer.id, session_factory=session_factory
    )
    assert updated.status == AbsenceStatus.APPROVED.value
    assert db_session.query(Notification).filter(Notification.user_id == employee.id).count() == 0


def test_missing_balance_on_approval_keeps_status(db_session, employee, employer, contract, session_factory):
    absence, _ = absence_service.create_absence(
        db_session,
        employee.id,
        _request(AbsenceType.VACATION, date(2024, 7, 8), date(2024, 7, 10)),
        session_factory=session_factory,
        today=date(2025, 6, 1)
    )
    db_session.query(LeaveBalance).delete()
    db_session.commit()

    updated = absence_service.update_absence_status(
        db_session, absence.id, AbsenceStatus.APPROVED, employer.id, session_factory=session_factory
    )
    assert updated.status == AbsenceStatus.APPROVED.value


def test_only_owner_can_cancel(db_session, employee, employer, contract, session_factory):
    absence, _ = absence_service.create_absence(
        db_session,
        employee.id,
        _request(AbsenceType.TRAINING, date(2024, 7, 8), date(2024, 7, 10)),
        session_factory=session_factory,
        today=TODAY
    )
    with pytest.raises(AccessDeniedError):
        absence_service.cancel_absence(db_session, absence.id, employer.id)
    assert db_session.get(Absence, absence.id) is not None


def test_preview_matches_creation(db_session, employee, contract):
    preview = absence_service.preview_absence(
        db_session,
        employee.id,
        _request(AbsenceType.VACATION, date(2024, 7, 1), date(2024, 8, 30)),
        today=date(2025, 6, 1)
    )
    assert preview.valid is False
    assert [issue.code for issue in preview.errors] == ["insufficient_balance"]
    assert db_session.query(LeaveBalance).count() == 0
