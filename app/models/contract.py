from sqlalchemy import Column, Integer, String, Date, Float, ForeignKey, DateTime
from sqlalchemy.sql import func
from app.database import Base
import enum

class ContractType(str, enum.Enum):
    CDI = "cdi"
    CDD = "cdd"

class ContractStatus(str, enum.Enum):
    ACTIVE = "active"
    TERMINATED = "terminated"

class Contract(Base):
    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, index=True)
    employer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    contract_type = Column(String, default=ContractType.CDI.value, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    weekly_hours = Column(Float, nullable=False)
    hourly_rate = Column(Float, nullable=False)
    status = Column(String, default=ContractStatus.ACTIVE.value, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
