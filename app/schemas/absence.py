from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Union

from app.models.absence import AbsenceType, AbsenceStatus

class AbsenceCreate(BaseModel):
    absence_type: AbsenceType
    start_date: date
    end_date: date
    reason: Optional[str] = Field(default=None, max_length=1000)
    justification_url: Optional[str] = None
    # Defaults to the employee's oldest active contract
    contract_id: Optional[int] = None
    # Kept as a plain string so unknown values reach the validator and get a readable error
    family_event_type: Optional[str] = None

class AbsenceCandidate(BaseModel):
    """What the validator needs to judge a request."""
    employee_id: int
    absence_type: AbsenceType
    start_date: date
    end_date: date
    family_event_type: Optional[str] = None

class ExistingAbsence(BaseModel):
    id: int
    start_date: date
    end_date: date
    status: AbsenceStatus

    model_config = ConfigDict(from_attributes=True)

class AbsenceResponse(BaseModel):
    id: int
    employee_id: int
    contract_id: Optional[int] = None
    absence_type: str
    start_date: date
    end_date: date
    reason: Optional[str] = None
    justification_url: Optional[str] = None
    status: str
    business_days_count: Optional[int] = None
    justification_due_date: Optional[date] = None
    family_event_type: Optional[str] = None
    leave_year: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class AbsenceCreateResponse(BaseModel):
    absence: AbsenceResponse
    warnings: List[str] = []

# --- Validation results ---

class ValidationIssue(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = {}

class ValidResult(BaseModel):
    valid: Literal[True] = True
    warnings: List[str] = []

class InvalidResult(BaseModel):
    valid: Literal[False] = False
    errors: List[ValidationIssue]
    warnings: List[str] = []

AbsenceValidationResult = Union[ValidResult, InvalidResult]

class AbsenceValidationResponse(BaseModel):
    valid: bool
    errors: List[ValidationIssue] = []
    warnings: List[str] = []
    business_days_count: int
    leave_year: Optional[str] = None
