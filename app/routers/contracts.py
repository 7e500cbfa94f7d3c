from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_employer
from app.schemas.contract import ContractCreate, ContractResponse
from app.services import contract_service

router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
def create_contract(
    request: ContractCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_employer)
):
    return contract_service.create_contract(db, current_user.id, request)


@router.get("/me", response_model=List[ContractResponse])
def my_contracts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return contract_service.list_contracts_for_user(db, current_user)
