from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date
from typing import Optional

from app.models.contract import ContractType

class ContractCreate(BaseModel):
    employee_id: int
    contract_type: ContractType = ContractType.CDI
    start_date: date
    end_date: Optional[date] = None
    weekly_hours: float = Field(gt=0, le=48)
    hourly_rate: float = Field(gt=0)
    # Leave history carried in from before the contract was registered
    initial_months_worked: Optional[float] = Field(default=None, ge=0, le=12)
    initial_taken_days: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

class ContractResponse(BaseModel):
    id: int
    employer_id: int
    employee_id: int
    contract_type: str
    start_date: date
    end_date: Optional[date] = None
    weekly_hours: float
    hourly_rate: float
    status: str

    model_config = ConfigDict(from_attributes=True)
