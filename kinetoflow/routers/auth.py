from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kinetoflow.db.session import get_db
from kinetoflow.schemas.auth import LoginRequest, LoginResponse
from kinetoflow.services import users as user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """Exchange email and password for a bearer token."""

    token, user = user_service.authenticate(db, email=payload.email, password=payload.password)
    return LoginResponse(
        token=token,
        user_id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        tenant_id=user.tenant_id,
    )
