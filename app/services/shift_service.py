import logging
from datetime import date

from sqlalchemy.orm import Session

from app.models.shift import Shift, ShiftStatus

logger = logging.getLogger(__name__)


def cancel_planned_shifts(db: Session, employee_id: int, start_date: date, end_date: date) -> int:
    """
    Cancel the employee's planned shifts dated within [start_date, end_date].
    Completed shifts are left alone. Returns the number of cancelled shifts.
    Flushes only; the caller owns the transaction.
    """
    cancelled = db.query(Shift).filter(
        Shift.employee_id == employee_id,
        Shift.status == ShiftStatus.PLANNED.value,
        Shift.date >= start_date,
        Shift.date <= end_date
    ).update({Shift.status: ShiftStatus.CANCELLED.value}, synchronize_session=False)
    db.flush()
    logger.info(f"Cancelled {cancelled} planned shift(s) for employee {employee_id} between {start_date} and {end_date}")
    return cancelled
