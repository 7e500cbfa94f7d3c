import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, JSON, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class NotificationType(str, enum.Enum):
    ABSENCE_REQUESTED = "absence_requested"
    ABSENCE_RESOLVED = "absence_resolved"


class NotificationPriority(str, enum.Enum):
    NORMAL = "normal"
    HIGH = "high"


class Notification(Base):
    """In-app message for one user, written by the absence workflow."""
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_unread", "user_id", "is_read"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    priority = Column(String(20), default=NotificationPriority.NORMAL.value, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # Absence dates and type, so clients can link back without parsing the message
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="notifications")
