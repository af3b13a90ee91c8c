"""Core domain models - users, pets and what hangs off them."""
from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    Text,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from petsup.database import Base


class User(Base):
    """
    A platform user. The same user can be a donor (owns pets) and an adopter.

    Invariants:
    - email, cpf and phone are unique (checked in the service layer before
      insert/update, backed by unique indexes)
    - cpf and phone are stored as digits only
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(11), nullable=False, unique=True)
    cpf = Column(String(11), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    zip_code = Column(String(8), nullable=True)

    sex_id = Column(Integer, ForeignKey("user_sexes.id"), nullable=True)
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=True)
    state_id = Column(Integer, ForeignKey("states.id"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    sex = relationship("UserSex")
    city = relationship("City")
    state = relationship("State")

    pets = relationship("Pet", back_populates="owner", cascade="all, delete")
    favorites = relationship("Favorite", back_populates="user", cascade="all, delete-orphan")
    recovery_codes = relationship("PasswordRecovery", back_populates="user", cascade="all, delete-orphan")

    # Terms disappear with either party
    adoption_terms_as_donor = relationship(
        "AdoptionTerm", foreign_keys="AdoptionTerm.donor_id", cascade="all, delete"
    )
    adoption_terms_as_adopter = relationship(
        "AdoptionTerm", foreign_keys="AdoptionTerm.adopter_id", cascade="all, delete"
    )
    compromise_terms_as_donor = relationship(
        "CompromiseTerm", foreign_keys="CompromiseTerm.donor_id", cascade="all, delete"
    )
    compromise_terms_as_adopter = relationship(
        "CompromiseTerm", foreign_keys="CompromiseTerm.adopter_id", cascade="all, delete"
    )
    donation_term = relationship("DonationTerm", uselist=False, cascade="all, delete")


class Pet(Base):
    """
    A pet listed for adoption. The owner is the donor in every term signed for it.
    """
    __tablename__ = "pets"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)  # litters are listed as one pet
    donation_reason = Column(String(255), nullable=True)

    species_id = Column(Integer, ForeignKey("species.id"), nullable=False, index=True)
    breed_id = Column(Integer, ForeignKey("breeds.id"), nullable=False, index=True)
    sex_id = Column(Integer, ForeignKey("pet_sexes.id"), nullable=False)
    age_bracket_id = Column(Integer, ForeignKey("age_brackets.id"), nullable=True, index=True)
    status_id = Column(Integer, ForeignKey("statuses.id"), nullable=True, index=True)
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    species = relationship("Species")
    breed = relationship("Breed")
    sex = relationship("PetSex")
    age_bracket = relationship("AgeBracket")
    status = relationship("Status")
    city = relationship("City")
    owner = relationship("User", back_populates="pets")

    diseases = relationship("PetDisease", back_populates="pet", cascade="all, delete-orphan")
    favorites = relationship("Favorite", back_populates="pet", cascade="all, delete-orphan")
    adoption_term = relationship("AdoptionTerm", uselist=False, cascade="all, delete")
    compromise_term = relationship("CompromiseTerm", uselist=False, cascade="all, delete")


class PetDisease(Base):
    """Link between a pet and a disease/disability."""
    __tablename__ = "pet_diseases"

    pet_id = Column(Integer, ForeignKey("pets.id"), primary_key=True)
    disease_id = Column(Integer, ForeignKey("diseases.id"), primary_key=True)
    present = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    pet = relationship("Pet", back_populates="diseases")
    disease = relationship("Disease")


class Favorite(Base):
    """A pet bookmarked by a user. One row per (user, pet)."""
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "pet_id", name="uq_favorites_user_pet"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    pet_id = Column(Integer, ForeignKey("pets.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("User", back_populates="favorites")
    pet = relationship("Pet", back_populates="favorites")


class PasswordRecovery(Base):
    """
    A 6-digit password-recovery code.

    Invariants:
    - At most one active (not expired) code per user; issuing a new code
      expires the previous ones
    - A code is single use: it is expired as soon as the password is reset
    """
    __tablename__ = "password_recoveries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    code = Column(String(6), nullable=False)
    expired = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("User", back_populates="recovery_codes")
