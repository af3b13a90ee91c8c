"""
User accounts and password recovery.

Invariants:
- email, CPF and phone are unique; duplicates are reported as ConflictError
  before the insert/update reaches the database
- CPF and phone are validated and stored as digits only
- A user has at most one active recovery code
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from petsup.auth.security import hash_password, verify_password
from petsup.config import settings
from petsup.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from petsup.models.domain import PasswordRecovery, User
from petsup.models.lookups import City, State
from petsup.services.validators import normalize_cpf, normalize_phone

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ("email", "cpf", "phone")


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", {"user_id": user_id})
        return user

    def list(self) -> List[User]:
        return self.db.query(User).order_by(User.name).all()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def create(self, data: dict) -> User:
        """Register a user. `data` carries the plain `password`, which is hashed here."""
        fields = self._normalize(data)
        self._check_duplicates(fields)
        self._check_location(fields)

        password = fields.pop("password")
        user = User(**fields, password_hash=hash_password(password))
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("user %s registered", user.id)
        return user

    def update(self, user_id: int, data: dict) -> User:
        user = self.get(user_id)
        fields = self._normalize({k: v for k, v in data.items() if v is not None})
        self._check_duplicates(fields, exclude_id=user_id)
        self._check_location(fields)

        password = fields.pop("password", None)
        if password:
            user.password_hash = hash_password(password)
        for key, value in fields.items():
            setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user_id: int) -> None:
        """Delete a user with their pets, favorites and every term they are a party to."""
        user = self.get(user_id)
        self.db.delete(user)
        self.db.commit()
        logger.info("user %s deleted", user_id)

    def availability(self, email: Optional[str] = None, cpf: Optional[str] = None,
                     phone: Optional[str] = None) -> Dict[str, bool]:
        """Report which of the given values are still free to register."""
        result = {}
        if email:
            result["email"] = self._find_by("email", email.strip().lower()) is None
        if cpf:
            result["cpf"] = self._find_by("cpf", normalize_cpf(cpf)) is None
        if phone:
            result["phone"] = self._find_by("phone", normalize_phone(phone)) is None
        return result

    def authenticate(self, email: str, password: str) -> User:
        user = self.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning("failed login for %s", email)
            raise AuthenticationError("Invalid email or password")
        return user

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------

    def issue_recovery_code(self, email: str) -> PasswordRecovery:
        """Expire the user's pending codes and issue a fresh 6-digit one."""
        user = self.get_by_email(email)
        if not user:
            raise NotFoundError("User not found", {"email": email})

        self._expire_codes(user.id)
        recovery = PasswordRecovery(
            user_id=user.id,
            email=user.email,
            code=f"{secrets.randbelow(1_000_000):06d}",
            expires_at=datetime.utcnow() + timedelta(minutes=settings.recovery_code_ttl_minutes),
        )
        self.db.add(recovery)
        self.db.commit()
        self.db.refresh(recovery)
        logger.info("recovery code issued for user %s", user.id)
        return recovery

    def verify_recovery_code(self, email: str, code: str) -> PasswordRecovery:
        recovery = (
            self.db.query(PasswordRecovery)
            .filter(
                PasswordRecovery.email == email.strip().lower(),
                PasswordRecovery.code == code,
                PasswordRecovery.expired.is_(False),
            )
            .order_by(PasswordRecovery.created_at.desc())
            .first()
        )
        if not recovery:
            raise ValidationError("Invalid recovery code", {"field": "code"})
        if recovery.expires_at < datetime.utcnow():
            recovery.expired = True
            self.db.commit()
            raise ValidationError("Recovery code expired", {"field": "code"})
        return recovery

    def reset_password(self, email: str, code: str, new_password: str) -> User:
        recovery = self.verify_recovery_code(email, code)
        user = self.get(recovery.user_id)
        user.password_hash = hash_password(new_password)
        recovery.expired = True
        self.db.commit()
        self.db.refresh(user)
        logger.info("password reset for user %s", user.id)
        return user

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _expire_codes(self, user_id: int) -> None:
        self.db.query(PasswordRecovery).filter(
            PasswordRecovery.user_id == user_id,
            PasswordRecovery.expired.is_(False),
        ).update({PasswordRecovery.expired: True}, synchronize_session=False)

    def _find_by(self, field: str, value: str, exclude_id: Optional[int] = None) -> Optional[User]:
        query = self.db.query(User).filter(getattr(User, field) == value)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first()

    def _normalize(self, data: dict) -> dict:
        fields = dict(data)
        if fields.get("email"):
            fields["email"] = fields["email"].strip().lower()
        if fields.get("cpf"):
            fields["cpf"] = normalize_cpf(fields["cpf"])
        if fields.get("phone"):
            fields["phone"] = normalize_phone(fields["phone"])
        if fields.get("name"):
            fields["name"] = " ".join(fields["name"].split())
        return fields

    def _check_duplicates(self, fields: dict, exclude_id: Optional[int] = None) -> None:
        for field in UNIQUE_FIELDS:
            if fields.get(field) and self._find_by(field, fields[field], exclude_id):
                raise ConflictError(f"{field} already registered", {"field": field})

    def _check_location(self, fields: dict) -> None:
        """A city must exist and belong to the given state; the state is derived when omitted."""
        city_id = fields.get("city_id")
        state_id = fields.get("state_id")
        if state_id and not self.db.get(State, state_id):
            raise NotFoundError("State not found", {"state_id": state_id})
        if city_id:
            city = self.db.get(City, city_id)
            if not city:
                raise NotFoundError("City not found", {"city_id": city_id})
            if state_id and city.state_id != state_id:
                raise ValidationError("City does not belong to the given state", {"field": "city_id"})
            fields["state_id"] = city.state_id
