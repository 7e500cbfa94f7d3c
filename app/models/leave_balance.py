from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base

class LeaveBalance(Base):
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("contract_id", "leave_year", name="uq_leave_balances_contract_year"),
    )

    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(Integer, ForeignKey("contracts.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    employer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_year = Column(String, nullable=False)  # e.g. "2025-2026"
    acquired_days = Column(Float, default=0.0, nullable=False)
    taken_days = Column(Float, default=0.0, nullable=False)
    adjustment_days = Column(Float, default=0.0, nullable=False)  # manual correction, may be negative
    is_manual_init = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def remaining_days(self) -> float:
        return (self.acquired_days or 0.0) + (self.adjustment_days or 0.0) - (self.taken_days or 0.0)
