"""User registration and profile endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from petsup.api.schemas import UserCreate, UserUpdate, UserResponse, AvailabilityResponse
from petsup.auth.deps import get_current_user
from petsup.database import get_db
from petsup.errors import AuthorizationError
from petsup.models.domain import User
from petsup.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


def _require_self(user_id: int, current_user: User) -> None:
    if current_user.id != user_id:
        raise AuthorizationError("You can only change your own account", {"user_id": user_id})


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(body: UserCreate, db: Session = Depends(get_db)):
    return UserService(db).create(body.model_dump())


@router.get("", response_model=List[UserResponse])
def list_users(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return UserService(db).list()


@router.get("/availability", response_model=AvailabilityResponse)
def check_availability(
    email: Optional[str] = None,
    cpf: Optional[str] = None,
    phone: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Check email, CPF and phone against registered users before sign-up."""
    return UserService(db).availability(email=email, cpf=cpf, phone=phone)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return UserService(db).get(user_id)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update the caller's profile. Signed terms keep their snapshot; use the
    resync endpoints to bring them up to date.
    """
    _require_self(user_id, current_user)
    return UserService(db).update(user_id, body.model_dump(exclude_unset=True))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    _require_self(user_id, current_user)
    UserService(db).delete(user_id)
