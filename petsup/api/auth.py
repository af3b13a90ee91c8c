"""Login, session and password-recovery endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from petsup.api.deps import get_mailer
from petsup.api.schemas import (
    LoginRequest,
    TokenResponse,
    MessageResponse,
    UserResponse,
    RecoveryRequest,
    RecoveryVerify,
    RecoveryReset,
    RecoveryIssued
)
from petsup.auth.deps import get_current_user
from petsup.auth.security import create_access_token
from petsup.config import settings
from petsup.database import get_db
from petsup.models.domain import User
from petsup.services.delivery import send_recovery_code
from petsup.services.mailer import Mailer
from petsup.services.users import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    user = UserService(db).authenticate(credentials.email, credentials.password)
    return TokenResponse(
        access_token=create_access_token(user.id, user.email),
        user=UserResponse.model_validate(user)
    )


@router.post("/logout", response_model=MessageResponse)
def logout():
    """Tokens are stateless; the client discards its copy."""
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/password-recovery", response_model=RecoveryIssued)
def request_recovery(
    body: RecoveryRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer)
):
    """Issue a 6-digit code and email it. Any previous code stops working."""
    recovery = UserService(db).issue_recovery_code(body.email)
    sent = send_recovery_code(
        mailer, recovery.email, recovery.user.name, recovery.code, settings.recovery_code_ttl_minutes
    )
    return RecoveryIssued(message="Recovery code issued", expires_at=recovery.expires_at, email_sent=sent)


@router.post("/password-recovery/verify", response_model=MessageResponse)
def verify_recovery(body: RecoveryVerify, db: Session = Depends(get_db)):
    UserService(db).verify_recovery_code(body.email, body.code)
    return MessageResponse(message="Code is valid")


@router.post("/password-recovery/reset", response_model=MessageResponse)
def reset_password(body: RecoveryReset, db: Session = Depends(get_db)):
    UserService(db).reset_password(body.email, body.code, body.new_password)
    return MessageResponse(message="Password updated")
