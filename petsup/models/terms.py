"""
Commitment terms - the legal documents signed when a pet changes custody.

A term is a snapshot: it copies pet and party data as they were at signing
time so the record does not change when the live rows are edited later.

Invariants:
- One adoption term and one compromise term per pet, one donation term per
  donor (unique constraints; the service also checks before inserting)
- document_hash is recomputed by the service on every write path and must
  match a fresh recomputation for the term to be considered untampered
- Snapshot fields only change through the resync operation, which touches
  the signing party's fields and nothing else
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import declared_attr
from petsup.database import Base
from petsup.models.enums import DocumentType


class PetTransferTermMixin:
    """Columns shared by the adoption and compromise variants."""

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    @declared_attr
    def pet_id(cls):
        return Column(Integer, ForeignKey("pets.id"), nullable=False, unique=True)

    @declared_attr
    def donor_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    @declared_attr
    def adopter_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Pet snapshot
    pet_name = Column(String(255), nullable=False)
    pet_species_id = Column(Integer, nullable=False)
    pet_species_name = Column(String(255), nullable=False)
    pet_breed_id = Column(Integer, nullable=False)
    pet_breed_name = Column(String(255), nullable=False)
    pet_age = Column(Integer, nullable=False)
    pet_sex_id = Column(Integer, nullable=False)
    pet_sex_name = Column(String(50), nullable=False)
    pet_donation_reason = Column(String(255), nullable=True)

    # Donor snapshot
    donor_name = Column(String(255), nullable=False)
    donor_email = Column(String(255), nullable=False)
    donor_phone = Column(String(20), nullable=True)

    # Adopter snapshot
    adopter_name = Column(String(255), nullable=False)
    adopter_email = Column(String(255), nullable=False)
    adopter_phone = Column(String(20), nullable=True)
    adopter_document = Column(String(14), nullable=True)
    adopter_document_type = Column(String(10), nullable=True, default=DocumentType.CPF.value)
    adopter_city_id = Column(Integer, nullable=True)
    adopter_city_name = Column(String(255), nullable=True)
    adopter_state_id = Column(Integer, nullable=True)
    adopter_state_name = Column(String(255), nullable=True)

    # Signature
    signature_text = Column(String(255), nullable=False)  # typed name
    signed_at = Column(DateTime, nullable=False)
    observations = Column(Text, nullable=True)

    document_hash = Column(String(64), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def adopter_location(self) -> str:
        return _format_location(self.adopter_city_name, self.adopter_state_name)


class AdoptionTerm(PetTransferTermMixin, Base):
    """Adoption term. Captures the location of both parties."""
    __tablename__ = "adoption_terms"

    donor_city_id = Column(Integer, nullable=True)
    donor_city_name = Column(String(255), nullable=True)
    donor_state_id = Column(Integer, nullable=True)
    donor_state_name = Column(String(255), nullable=True)

    def donor_location(self) -> str:
        return _format_location(self.donor_city_name, self.donor_state_name)


class CompromiseTerm(PetTransferTermMixin, Base):
    """Compromise term. Same shape as the adoption term minus the donor's location."""
    __tablename__ = "compromise_terms"

    def donor_location(self) -> str:
        return _format_location(None, None)


class DonationTerm(Base):
    """
    Responsibility term a donor signs before listing pets.

    Invariants:
    - All six commitment flags are true
    - pdf_sent_at is cleared whenever the term is resynced
    """
    __tablename__ = "donation_terms"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    donor_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)

    # Donor snapshot
    donor_name = Column(String(255), nullable=False)
    donor_email = Column(String(255), nullable=False)
    donor_phone = Column(String(20), nullable=True)
    donor_document = Column(String(14), nullable=True)
    donor_document_type = Column(String(10), nullable=True, default=DocumentType.CPF.value)
    donor_city_id = Column(Integer, nullable=True)
    donor_city_name = Column(String(255), nullable=True)
    donor_state_id = Column(Integer, nullable=True)
    donor_state_name = Column(String(255), nullable=True)

    donation_reason = Column(String(500), nullable=False)
    adoption_conditions = Column(Text, nullable=True)
    observations = Column(Text, nullable=True)

    # Commitments
    confirms_legal_guardian = Column(Boolean, nullable=False, default=False)
    allows_visits = Column(Boolean, nullable=False, default=False)
    accepts_follow_up = Column(Boolean, nullable=False, default=False)
    confirms_health_info = Column(Boolean, nullable=False, default=False)
    allows_background_check = Column(Boolean, nullable=False, default=False)
    commits_to_contact = Column(Boolean, nullable=False, default=False)

    signature_text = Column(String(255), nullable=False)
    signed_at = Column(DateTime, nullable=False)
    document_hash = Column(String(64), nullable=True)
    pdf_sent_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def donor_location(self) -> str:
        return _format_location(self.donor_city_name, self.donor_state_name)


COMMITMENT_FLAGS = (
    "confirms_legal_guardian",
    "allows_visits",
    "accepts_follow_up",
    "confirms_health_info",
    "allows_background_check",
    "commits_to_contact",
)


def _format_location(city_name, state_name) -> str:
    if city_name and state_name:
        return f"{city_name} - {state_name}"
    if state_name:
        return state_name
    return "Não informado"
