from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kinetoflow.db.session import get_db
from kinetoflow.deps import require_roles
from kinetoflow.models import User, UserRole
from kinetoflow.schemas.common import MessageResponse
from kinetoflow.schemas.invitations import (
    InvitationAcceptRequest,
    InvitationDetails,
    InvitationSendRequest,
)
from kinetoflow.services import invitations as invitation_service

router = APIRouter(prefix="/invitations", tags=["invitations"])

_inviters = require_roles(UserRole.MEDIC, UserRole.TENANT_ADMIN, UserRole.PLATFORM_ADMIN)


@router.post("/send", status_code=status.HTTP_202_ACCEPTED, response_model=MessageResponse)
def send_invitation(
    payload: InvitationSendRequest,
    actor: User = Depends(_inviters),
    db: Session = Depends(get_db),
) -> MessageResponse:
    invitation_service.send_invitation(
        db, actor=actor, email=payload.email, role=payload.role, tenant_id=payload.tenant_id
    )
    return MessageResponse(message=f"Invitation sent to {payload.email}")


@router.get("/details/{token}", response_model=InvitationDetails)
def invitation_details(token: str, db: Session = Depends(get_db)) -> InvitationDetails:
    """Public: describe a pending invitation for the acceptance page."""

    return invitation_service.lookup_invitation(db, token=token)


@router.post("/accept", response_model=MessageResponse)
def accept_invitation(
    payload: InvitationAcceptRequest, db: Session = Depends(get_db)
) -> MessageResponse:
    invitation_service.accept_invitation(
        db, token=payload.token, name=payload.name, password=payload.password
    )
    return MessageResponse(message="Account activated. You can now log in.")
