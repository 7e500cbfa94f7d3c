from sqlalchemy import Column, Integer, String, Date, ForeignKey, DateTime, SmallInteger, DDL, event
from sqlalchemy.sql import func
from app.database import Base
import enum

OVERLAP_CONSTRAINT_NAME = "absences_no_overlap"

class AbsenceType(str, enum.Enum):
    SICK = "sick"
    VACATION = "vacation"
    TRAINING = "training"
    UNAVAILABLE = "unavailable"
    EMERGENCY = "emergency"
    FAMILY_EVENT = "family_event"

class AbsenceStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

# Statuses that still occupy the calendar
ACTIVE_STATUSES = frozenset({AbsenceStatus.PENDING, AbsenceStatus.APPROVED})

class FamilyEventType(str, enum.Enum):
    MARRIAGE = "marriage"
    PACS = "pacs"
    BIRTH = "birth"
    ADOPTION = "adoption"
    DEATH_SPOUSE = "death_spouse"
    DEATH_PARENT = "death_parent"
    DEATH_CHILD = "death_child"
    DEATH_SIBLING = "death_sibling"
    DEATH_IN_LAW = "death_in_law"
    CHILD_MARRIAGE = "child_marriage"
    DISABILITY_ANNOUNCEMENT = "disability_announcement"

# Days granted per family event (IDCC 3239 art. 12)
FAMILY_EVENT_DAYS = {
    FamilyEventType.MARRIAGE: 4,
    FamilyEventType.PACS: 4,
    FamilyEventType.BIRTH: 3,
    FamilyEventType.ADOPTION: 3,
    FamilyEventType.DEATH_SPOUSE: 3,
    FamilyEventType.DEATH_PARENT: 3,
    FamilyEventType.DEATH_CHILD: 5,
    FamilyEventType.DEATH_SIBLING: 3,
    FamilyEventType.DEATH_IN_LAW: 3,
    FamilyEventType.CHILD_MARRIAGE: 1,
    FamilyEventType.DISABILITY_ANNOUNCEMENT: 2,
}

FAMILY_EVENT_LABELS = {
    FamilyEventType.MARRIAGE: "Marriage",
    FamilyEventType.PACS: "Civil partnership (PACS)",
    FamilyEventType.BIRTH: "Birth",
    FamilyEventType.ADOPTION: "Adoption",
    FamilyEventType.DEATH_SPOUSE: "Death of a spouse",
    FamilyEventType.DEATH_PARENT: "Death of a parent",
    FamilyEventType.DEATH_CHILD: "Death of a child",
    FamilyEventType.DEATH_SIBLING: "Death of a sibling",
    FamilyEventType.DEATH_IN_LAW: "Death of a parent-in-law",
    FamilyEventType.CHILD_MARRIAGE: "Marriage of a child",
    FamilyEventType.DISABILITY_ANNOUNCEMENT: "Announcement of a child's disability",
}

ABSENCE_TYPE_LABELS = {
    AbsenceType.SICK: "sick leave",
    AbsenceType.VACATION: "paid vacation",
    AbsenceType.TRAINING: "training",
    AbsenceType.UNAVAILABLE: "unavailability",
    AbsenceType.EMERGENCY: "emergency",
    AbsenceType.FAMILY_EVENT: "family event",
}

class Absence(Base):
    __tablename__ = "absences"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    contract_id = Column(Integer, ForeignKey("contracts.id"), nullable=True, index=True)
    absence_type = Column(String, nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String, nullable=True)
    justification_url = Column(String, nullable=True)
    status = Column(String, default=AbsenceStatus.PENDING.value, nullable=False, index=True)
    business_days_count = Column(SmallInteger, nullable=True)
    justification_due_date = Column(Date, nullable=True)  # sick leave only
    family_event_type = Column(String, nullable=True)  # family_event only
    leave_year = Column(String, nullable=True)  # vacation only
    created_at = Column(DateTime(timezone=True), server_default=func.now())

# PostgreSQL backstop for the overlap invariant; SQLite relies on the in-app check.
event.listen(
    Absence.__table__,
    "after_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Absence.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE absences ADD CONSTRAINT {OVERLAP_CONSTRAINT_NAME} "
        "EXCLUDE USING GIST (employee_id WITH =, daterange(start_date, end_date, '[]') WITH &&) "
        "WHERE (status IN ('pending', 'approved'))"
    ).execute_if(dialect="postgresql"),
)
