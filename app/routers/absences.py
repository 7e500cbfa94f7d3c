from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session, sessionmaker

from app.database import get_db, get_session_factory
from app.models.absence import AbsenceStatus
from app.models.user import User
from app.routers.auth_deps import require_employee, require_employer
from app.schemas.absence import (
    AbsenceCreate,
    AbsenceCreateResponse,
    AbsenceResponse,
    AbsenceValidationResponse,
)
from app.services import absence_service

router = APIRouter(prefix="/absences", tags=["absences"])


@router.post("", response_model=AbsenceCreateResponse, status_code=status.HTTP_201_CREATED)
def declare_absence(
    request: AbsenceCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: User = Depends(require_employee)
):
    absence, warnings = absence_service.create_absence(
        db,
        current_user.id,
        request,
        background_tasks=background_tasks,
        session_factory=session_factory
    )
    return AbsenceCreateResponse(absence=AbsenceResponse.model_validate(absence), warnings=warnings)


@router.post("/validate", response_model=AbsenceValidationResponse)
def validate_absence(
    request: AbsenceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employee)
):
    """Dry run of the leave rules; nothing is written."""
    return absence_service.preview_absence(db, current_user.id, request)


@router.get("/me", response_model=List[AbsenceResponse])
def my_absences(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employee)
):
    return absence_service.list_absences_for_employee(db, current_user.id)


@router.get("/employer", response_model=List[AbsenceResponse])
def employer_absences(
    status: Optional[AbsenceStatus] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employer)
):
    return absence_service.list_absences_for_employer(db, current_user.id, status=status)


@router.post("/{absence_id}/approve", response_model=AbsenceResponse)
def approve_absence(
    absence_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: User = Depends(require_employer)
):
    return absence_service.update_absence_status(
        db,
        absence_id,
        AbsenceStatus.APPROVED,
        current_user.id,
        background_tasks=background_tasks,
        session_factory=session_factory
    )


@router.post("/{absence_id}/reject", response_model=AbsenceResponse)
def reject_absence(
    absence_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: User = Depends(require_employer)
):
    return absence_service.update_absence_status(
        db,
        absence_id,
        AbsenceStatus.REJECTED,
        current_user.id,
        background_tasks=background_tasks,
        session_factory=session_factory
    )


@router.delete("/{absence_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_absence(
    absence_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employee)
):
    absence_service.cancel_absence(db, absence_id, current_user.id)
