from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

class LeaveBalanceSnapshot(BaseModel):
    """The three ledger figures the validator reads."""
    acquired_days: float
    taken_days: float = 0.0
    adjustment_days: float = 0.0

    model_config = ConfigDict(from_attributes=True)

class LeaveBalanceResponse(BaseModel):
    id: int
    contract_id: int
    employee_id: int
    employer_id: int
    leave_year: str
    acquired_days: float
    taken_days: float
    adjustment_days: float
    remaining_days: float
    is_manual_init: bool
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
