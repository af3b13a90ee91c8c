"""
Term snapshot builder - creates, resyncs and verifies commitment terms.

Every write to a term goes through this service:
- create copies live pet and party data into an immutable snapshot
- resync re-pulls the signing party's live data and nothing else
- both recompute document_hash explicitly right before persisting
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Type, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from petsup.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from petsup.models.audit import AuditEventType
from petsup.models.domain import Pet, User
from petsup.models.enums import DocumentType, EligibilityReason, TermKind
from petsup.models.lookups import City, State
from petsup.models.terms import AdoptionTerm, CompromiseTerm, DonationTerm, COMMITMENT_FLAGS
from petsup.services.audit import record_event
from petsup.services.integrity import compute_hash, verify_integrity

logger = logging.getLogger(__name__)

PetTransferTerm = Union[AdoptionTerm, CompromiseTerm]
AnyTerm = Union[AdoptionTerm, CompromiseTerm, DonationTerm]

TERM_MODELS: Dict[TermKind, Type] = {
    TermKind.ADOPTION: AdoptionTerm,
    TermKind.COMPROMISE: CompromiseTerm,
    TermKind.DONATION: DonationTerm,
}

# Adopter-facing snapshot fields; the only ones resync_adopter may touch
ADOPTER_FIELDS = (
    "adopter_name",
    "adopter_email",
    "adopter_phone",
    "adopter_document",
    "adopter_document_type",
    "adopter_city_id",
    "adopter_city_name",
    "adopter_state_id",
    "adopter_state_name",
)


def signing_time() -> datetime:
    """Current UTC time truncated to whole seconds so it survives any DB round trip."""
    return datetime.utcnow().replace(microsecond=0)


def pet_snapshot(pet: Pet) -> dict:
    return {
        "pet_name": pet.name,
        "pet_species_id": pet.species_id,
        "pet_species_name": pet.species.name if pet.species else "",
        "pet_breed_id": pet.breed_id,
        "pet_breed_name": pet.breed.name if pet.breed else "",
        "pet_age": pet.age,
        "pet_sex_id": pet.sex_id,
        "pet_sex_name": pet.sex.description if pet.sex else "",
        "pet_donation_reason": pet.donation_reason,
    }


def party_snapshot(user: User, prefix: str, location: bool = True, document: bool = True) -> dict:
    """Copy a user's contact data into '<prefix>_*' snapshot fields."""
    snapshot = {
        f"{prefix}_name": user.name,
        f"{prefix}_email": user.email,
        f"{prefix}_phone": user.phone,
    }
    if document:
        snapshot[f"{prefix}_document"] = user.cpf
        snapshot[f"{prefix}_document_type"] = DocumentType.CPF.value
    if location:
        state = user.state or (user.city.state if user.city else None)
        snapshot[f"{prefix}_city_id"] = user.city_id
        snapshot[f"{prefix}_city_name"] = user.city.name if user.city else None
        snapshot[f"{prefix}_state_id"] = state.id if state else user.state_id
        snapshot[f"{prefix}_state_name"] = state.name if state else None
    return snapshot


class TermService:
    """Builds and maintains commitment-term snapshots."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Adoption / compromise
    # ------------------------------------------------------------------

    def create_adoption_term(
        self,
        pet_id: int,
        adopter_id: int,
        signature_text: str,
        observations: Optional[str] = None
    ) -> AdoptionTerm:
        return self.create_pet_transfer_term(
            TermKind.ADOPTION, pet_id, adopter_id, signature_text, observations
        )

    def create_compromise_term(
        self,
        pet_id: int,
        adopter_id: int,
        signature_text: str,
        observations: Optional[str] = None
    ) -> CompromiseTerm:
        return self.create_pet_transfer_term(
            TermKind.COMPROMISE, pet_id, adopter_id, signature_text, observations
        )

    def create_pet_transfer_term(
        self,
        kind: TermKind,
        pet_id: int,
        adopter_id: int,
        signature_text: str,
        observations: Optional[str] = None
    ) -> PetTransferTerm:
        """
        Materialize a term from live data at the moment of signing.

        Refuses with:
        - NotFoundError when the pet, its donor or the adopter is missing
        - ValidationError when the adopter owns the pet or the signature is blank
        - ConflictError when the pet already has a term of this kind
        """
        model = self._pet_transfer_model(kind)
        signature_text = _require_signature(signature_text)

        pet = self.db.get(Pet, pet_id)
        if not pet:
            raise NotFoundError("Pet not found", {"pet_id": pet_id})
        donor = pet.owner
        if not donor:
            raise NotFoundError("Pet has no responsible donor", {"pet_id": pet_id})
        adopter = self.db.get(User, adopter_id)
        if not adopter:
            raise NotFoundError("Adopter not found", {"adopter_id": adopter_id})
        if donor.id == adopter.id:
            raise ValidationError("You cannot adopt your own pet", {"pet_id": pet_id})

        existing = self.db.query(model).filter(model.pet_id == pet_id).first()
        if existing:
            self._refuse_duplicate(kind, "Pet", pet_id, adopter_id, existing.id)

        term = model(
            pet_id=pet.id,
            donor_id=donor.id,
            adopter_id=adopter.id,
            signature_text=signature_text,
            signed_at=signing_time(),
            observations=observations or None,
            **pet_snapshot(pet),
            **party_snapshot(donor, "donor", location=kind == TermKind.ADOPTION, document=False),
            **party_snapshot(adopter, "adopter"),
        )
        term.document_hash = compute_hash(term)

        self._insert(term, kind, "Pet", pet_id, adopter_id)
        logger.info(
            "%s term %s signed: pet=%s donor=%s adopter=%s",
            kind.value, term.id, term.pet_id, term.donor_id, term.adopter_id
        )
        return term

    def resync_adopter(
        self,
        kind: TermKind,
        term_id: int,
        adopter_id: int,
        signature_text: str,
        observations: Optional[str] = None,
        fallback: Optional[dict] = None
    ) -> PetTransferTerm:
        """
        Re-pull the adopter's live data into an existing term.

        Only adopter-facing snapshot fields, the signature and observations
        change; pet and donor snapshots are left as signed. Values in
        `fallback` (keyed like ADOPTER_FIELDS) fill fields the live row leaves empty.
        """
        model = self._pet_transfer_model(kind)
        signature_text = _require_signature(signature_text)

        term = self.db.get(model, term_id)
        if not term:
            raise NotFoundError("Term not found", {"term_id": term_id})
        if term.adopter_id != adopter_id:
            logger.warning(
                "refused resync of %s term %s: user %s is not the adopter", kind.value, term_id, adopter_id
            )
            raise AuthorizationError("This term does not belong to you", {"term_id": term_id})

        adopter = self.db.get(User, adopter_id)
        if not adopter:
            raise NotFoundError("Adopter not found", {"adopter_id": adopter_id})

        fields = party_snapshot(adopter, "adopter")
        for key, value in (fallback or {}).items():
            if key in ADOPTER_FIELDS and value and not fields.get(key):
                fields[key] = value
        self._resolve_location_names(fields, "adopter")

        previous_name = term.adopter_name
        for key, value in fields.items():
            setattr(term, key, value)
        term.signature_text = signature_text
        term.observations = observations or None
        term.signed_at = signing_time()
        term.document_hash = compute_hash(term)

        record_event(
            self.db,
            event_type=AuditEventType.TERM_RESYNCED,
            entity_type=model.__name__,
            entity_id=term.id,
            user_id=adopter_id,
            payload={"previous_name": previous_name, "new_name": term.adopter_name}
        )
        self.db.commit()
        self.db.refresh(term)
        logger.info("%s term %s resynced for adopter %s", kind.value, term.id, adopter_id)
        return term

    # ------------------------------------------------------------------
    # Donation
    # ------------------------------------------------------------------

    def create_donation_term(
        self,
        donor_id: int,
        signature_text: str,
        donation_reason: str,
        commitments: Dict[str, bool],
        adoption_conditions: Optional[str] = None,
        observations: Optional[str] = None
    ) -> DonationTerm:
        """
        Create the responsibility term a donor signs before listing pets.

        Refuses with NotFoundError (no donor), ConflictError (donor already
        signed one) or ValidationError (a commitment left unaccepted).
        """
        signature_text = _require_signature(signature_text)
        donor = self.db.get(User, donor_id)
        if not donor:
            raise NotFoundError("Donor not found", {"donor_id": donor_id})

        existing = self.db.query(DonationTerm).filter(DonationTerm.donor_id == donor_id).first()
        if existing:
            self._refuse_duplicate(TermKind.DONATION, "User", donor_id, donor_id, existing.id)

        flags = _require_all_commitments(commitments)
        term = DonationTerm(
            donor_id=donor.id,
            donation_reason=donation_reason,
            adoption_conditions=adoption_conditions or None,
            observations=observations or None,
            signature_text=signature_text,
            signed_at=signing_time(),
            **flags,
            **party_snapshot(donor, "donor"),
        )
        term.document_hash = compute_hash(term)

        self._insert(term, TermKind.DONATION, "User", donor_id, donor_id)
        logger.info("donation term %s signed by donor %s", term.id, donor_id)
        return term

    def resync_donor(
        self,
        term_id: int,
        donor_id: int,
        signature_text: str,
        donation_reason: str,
        commitments: Dict[str, bool],
        adoption_conditions: Optional[str] = None,
        observations: Optional[str] = None
    ) -> DonationTerm:
        """Re-pull the donor's live data into their donation term and re-sign it."""
        signature_text = _require_signature(signature_text)
        term = self.db.get(DonationTerm, term_id)
        if not term:
            raise NotFoundError("Term not found", {"term_id": term_id})
        if term.donor_id != donor_id:
            raise AuthorizationError("This term does not belong to you", {"term_id": term_id})
        donor = self.db.get(User, donor_id)
        if not donor:
            raise NotFoundError("Donor not found", {"donor_id": donor_id})

        flags = _require_all_commitments(commitments)
        previous_name = term.donor_name
        for key, value in {**party_snapshot(donor, "donor"), **flags}.items():
            setattr(term, key, value)
        term.donation_reason = donation_reason
        term.adoption_conditions = adoption_conditions or None
        term.observations = observations or None
        term.signature_text = signature_text
        term.signed_at = signing_time()
        term.pdf_sent_at = None
        term.document_hash = compute_hash(term)

        record_event(
            self.db,
            event_type=AuditEventType.TERM_RESYNCED,
            entity_type=DonationTerm.__name__,
            entity_id=term.id,
            user_id=donor_id,
            payload={"previous_name": previous_name, "new_name": term.donor_name}
        )
        self.db.commit()
        self.db.refresh(term)
        return term

    def mark_pdf_sent(self, term: DonationTerm) -> DonationTerm:
        term.pdf_sent_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(term)
        return term

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_term(self, kind: TermKind, term_id: int) -> AnyTerm:
        term = self.db.get(TERM_MODELS[kind], term_id)
        if not term:
            raise NotFoundError("Term not found", {"term_id": term_id})
        return term

    def get_term_for_party(self, kind: TermKind, term_id: int, user_id: int) -> AnyTerm:
        """Fetch a term only if `user_id` signed it or is its donor."""
        term = self.get_term(kind, term_id)
        parties = {term.donor_id, getattr(term, "adopter_id", None)}
        if user_id not in parties:
            raise AuthorizationError("You are not a party to this term", {"term_id": term_id})
        return term

    def find_by_pet(self, kind: TermKind, pet_id: int) -> Optional[PetTransferTerm]:
        model = self._pet_transfer_model(kind)
        return self.db.query(model).filter(model.pet_id == pet_id).first()

    def find_by_donor(self, kind: TermKind, donor_id: int) -> List[AnyTerm]:
        model = TERM_MODELS[kind]
        return (
            self.db.query(model)
            .filter(model.donor_id == donor_id)
            .order_by(model.signed_at.desc())
            .all()
        )

    def find_by_adopter(self, kind: TermKind, adopter_id: int) -> List[PetTransferTerm]:
        model = self._pet_transfer_model(kind)
        return (
            self.db.query(model)
            .filter(model.adopter_id == adopter_id)
            .order_by(model.signed_at.desc())
            .all()
        )

    def find_donation_term(self, donor_id: int) -> Optional[DonationTerm]:
        return self.db.query(DonationTerm).filter(DonationTerm.donor_id == donor_id).first()

    def check_integrity(self, kind: TermKind, term_id: int) -> Tuple[AnyTerm, bool]:
        """Load a term and verify its hash; a mismatch is logged and audited."""
        term = self.get_term(kind, term_id)
        valid = verify_integrity(term)
        if not valid:
            logger.warning("integrity check failed for %s term %s", kind.value, term_id)
            record_event(
                self.db,
                event_type=AuditEventType.TERM_INTEGRITY_FAILED,
                entity_type=type(term).__name__,
                entity_id=term.id,
                payload={"stored_hash": term.document_hash, "computed_hash": compute_hash(term)}
            )
            self.db.commit()
        return term, valid

    def record_emailed(self, term: AnyTerm, recipients: List[str], user_id: Optional[int] = None) -> None:
        record_event(
            self.db,
            event_type=AuditEventType.TERM_EMAILED,
            entity_type=type(term).__name__,
            entity_id=term.id,
            user_id=user_id,
            payload={"recipients": recipients}
        )
        self.db.commit()

    def adoption_eligibility(self, kind: TermKind, pet_id: int, user_id: int) -> dict:
        """
        Tell a user whether they can sign a term for a pet.

        name_outdated means the user already signed, but their profile name
        changed since and the term should be resynced.
        """
        pet = self.db.get(Pet, pet_id)
        if not pet:
            raise NotFoundError("Pet not found", {"pet_id": pet_id})
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", {"user_id": user_id})

        result = {"can_adopt": False, "has_term": False, "name_outdated": False, "reason": None}
        if pet.owner_id == user_id:
            result["reason"] = EligibilityReason.OWN_PET.value
            return result

        term = self.find_by_pet(kind, pet_id)
        if term is None:
            result["can_adopt"] = True
        elif term.adopter_id != user_id:
            result["has_term"] = True
            result["reason"] = EligibilityReason.ALREADY_ADOPTED.value
        else:
            result["has_term"] = True
            if (user.name or "").strip() != (term.adopter_name or "").strip():
                result["name_outdated"] = True
                result["reason"] = EligibilityReason.NAME_OUTDATED.value
            else:
                result["can_adopt"] = True
        return result

    def can_register_pets(self, user_id: int) -> dict:
        """A user may list pets once they hold a donation term signed under their current name."""
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found", {"user_id": user_id})
        term = self.find_donation_term(user_id)
        if term is None:
            return {"can_register": False, "has_term": False, "name_outdated": False}
        outdated = (user.name or "").strip() != (term.donor_name or "").strip()
        return {"can_register": not outdated, "has_term": True, "name_outdated": outdated}

    def term_stats(self, kind: TermKind) -> dict:
        model = TERM_MODELS[kind]
        now = datetime.utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_month = start_of_day.replace(day=1)

        def count(*criteria) -> int:
            return self.db.query(func.count(model.id)).filter(*criteria).scalar() or 0

        return {
            "total": count(),
            "today": count(model.signed_at >= start_of_day),
            "this_month": count(model.signed_at >= start_of_month),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pet_transfer_model(self, kind: TermKind):
        if kind not in (TermKind.ADOPTION, TermKind.COMPROMISE):
            raise ValueError(f"{kind.value} terms are not tied to a pet")
        return TERM_MODELS[kind]

    def _refuse_duplicate(self, kind: TermKind, entity_type: str, entity_id: int, user_id: int, existing_id=None):
        record_event(
            self.db,
            event_type=AuditEventType.TERM_REFUSED_DUPLICATE,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            payload={"kind": kind.value, "existing_term_id": existing_id}
        )
        self.db.commit()
        label = "pet" if entity_type == "Pet" else "donor"
        article = "An" if kind.value[0] in "aeiou" else "A"
        raise ConflictError(
            f"{article} {kind.value} term already exists for this {label}",
            {"existing_term_id": existing_id}
        )

    def _insert(self, term: AnyTerm, kind: TermKind, entity_type: str, entity_id: int, user_id: int) -> None:
        """
        Persist a new term. A concurrent signer that slipped past the existence
        check hits the unique constraint here and gets the same ConflictError.
        """
        self.db.add(term)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.warning("concurrent %s term insert lost for %s %s", kind.value, entity_type, entity_id)
            self._refuse_duplicate(kind, entity_type, entity_id, user_id)

        record_event(
            self.db,
            event_type=AuditEventType.TERM_CREATED,
            entity_type=type(term).__name__,
            entity_id=term.id,
            user_id=user_id,
            payload={"kind": kind.value, "document_hash": term.document_hash}
        )
        self.db.commit()
        self.db.refresh(term)

    def _resolve_location_names(self, fields: dict, prefix: str) -> None:
        city_id = fields.get(f"{prefix}_city_id")
        if city_id and not fields.get(f"{prefix}_city_name"):
            city = self.db.get(City, city_id)
            fields[f"{prefix}_city_name"] = city.name if city else None
        state_id = fields.get(f"{prefix}_state_id")
        if state_id and not fields.get(f"{prefix}_state_name"):
            state = self.db.get(State, state_id)
            fields[f"{prefix}_state_name"] = state.name if state else None


def _require_signature(signature_text: str) -> str:
    cleaned = " ".join((signature_text or "").split())
    if not cleaned:
        raise ValidationError("A digital signature is required", {"field": "signature_text"})
    return cleaned


def _require_all_commitments(commitments: Dict[str, bool]) -> Dict[str, bool]:
    flags = {name: bool((commitments or {}).get(name)) for name in COMMITMENT_FLAGS}
    missing = [name for name, accepted in flags.items() if not accepted]
    if missing:
        raise ValidationError(
            "All commitments must be accepted before listing pets for donation",
            {"missing": missing}
        )
    return flags
