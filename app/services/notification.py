from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.absence import ABSENCE_TYPE_LABELS, AbsenceStatus, AbsenceType
from app.models.notification import Notification, NotificationPriority, NotificationType
from app.models.user import User


def _format_day(day: date) -> str:
    return day.strftime("%d %B").lstrip("0")


class NotificationService:
    @staticmethod
    def create_notification(
        db: Session,
        user_id: int,
        type: str,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        data: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """
        Internal utility for creating notifications.
        Flushes only; the caller owns the transaction.
        """
        notification = Notification(
            user_id=user_id,
            type=type,
            priority=priority.value,
            title=title,
            message=message,
            data=data
        )
        db.add(notification)
        db.flush()
        return notification

    @staticmethod
    def list_for_user(db: Session, user_id: int, unread_only: bool = False) -> List[Notification]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def get_profile_name(db: Session, user_id: int) -> str:
    user = db.query(User).filter(User.id == user_id).first()
    return user.display_name if user else "An employee"


def notify_absence_requested(
    db: Session,
    employer_id: int,
    employee_name: str,
    absence_type: str,
    start_date: date,
    end_date: date
) -> Notification:
    """Tell the employer that an absence was declared."""
    label = ABSENCE_TYPE_LABELS.get(AbsenceType(absence_type), absence_type)
    return NotificationService.create_notification(
        db,
        user_id=employer_id,
        type=NotificationType.ABSENCE_REQUESTED.value,
        title="Absence request",
        message=(
            f"{employee_name} declared an absence ({label}) "
            f"from {_format_day(start_date)} to {_format_day(end_date)}."
        ),
        data={
            "employee_name": employee_name,
            "absence_type": absence_type,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        }
    )


def notify_absence_resolved(
    db: Session,
    employee_id: int,
    status: str,
    start_date: date,
    end_date: date
) -> Notification:
    """Tell the employee that their absence was approved or rejected."""
    status_label = "approved" if AbsenceStatus(status) == AbsenceStatus.APPROVED else "rejected"
    return NotificationService.create_notification(
        db,
        user_id=employee_id,
        type=NotificationType.ABSENCE_RESOLVED.value,
        priority=NotificationPriority.HIGH,
        title=f"Absence {status_label}",
        message=(
            f"Your absence request from {_format_day(start_date)} "
            f"to {_format_day(end_date)} was {status_label}."
        ),
        data={
            "status": status,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        }
    )
