"""Commitment-term endpoints: adoption, compromise and donation."""
import re
import unicodedata
from typing import List, Type
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from petsup.api.deps import get_mailer, get_session_factory
from petsup.api.schemas import (
    PetTransferTermCreate,
    PetTransferTermResync,
    AdoptionTermResponse,
    CompromiseTermResponse,
    DonationTermCreate,
    DonationTermResponse,
    IntegrityResponse,
    EligibilityResponse,
    RegistrationEligibilityResponse,
    TermStatsResponse,
    EmailSentResponse
)
from petsup.auth.deps import get_current_user
from petsup.database import get_db
from petsup.errors import AuthorizationError, NotFoundError
from petsup.models.domain import User
from petsup.models.enums import TermKind
from petsup.models.terms import COMMITMENT_FLAGS
from petsup.services.delivery import (
    deliver_donation_term,
    deliver_in_background,
    deliver_pet_transfer_term,
    pdf_filename
)
from petsup.services.documents import render_term_pdf
from petsup.services.mailer import Mailer
from petsup.services.terms import TermService


def _content_disposition(filename: str) -> str:
    """ASCII `filename` for every client plus the UTF-8 name as `filename*` (RFC 6266)."""
    folded = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = re.sub(r"[^A-Za-z0-9.-]+", "_", folded)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _pdf_response(kind: TermKind, term) -> Response:
    return Response(
        content=render_term_pdf(kind, term),
        media_type="application/pdf",
        headers={"Content-Disposition": _content_disposition(pdf_filename(kind, term))}
    )


def _schedule_delivery(background_tasks: BackgroundTasks, mailer: Mailer, kind: TermKind, term, session_factory):
    # Rendered now, while the term is still bound to the request session
    pdf = render_term_pdf(kind, term)
    background_tasks.add_task(deliver_in_background, mailer, kind, term, pdf, session_factory)


def _resolve_adopter(adopter_id, current_user: User) -> int:
    """Terms are always signed by the caller; an explicit adopter_id must match."""
    if adopter_id is not None and adopter_id != current_user.id:
        raise AuthorizationError("You can only sign terms as yourself", {"adopter_id": adopter_id})
    return current_user.id


def pet_transfer_router(path: str, kind: TermKind, response_schema: Type[BaseModel]) -> APIRouter:
    """Routes shared by the adoption and compromise variants."""
    router = APIRouter(prefix=path, tags=[f"{kind.value}-terms"])

    @router.post("", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    def create_term(
        body: PetTransferTermCreate,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
        mailer: Mailer = Depends(get_mailer),
        session_factory=Depends(get_session_factory)
    ):
        """
        Sign a term for a pet as the caller.

        WILL REFUSE if:
        - The caller owns the pet
        - The pet already has a term of this kind
        """
        adopter_id = _resolve_adopter(body.adopter_id, current_user)
        term = TermService(db).create_pet_transfer_term(
            kind, body.pet_id, adopter_id, body.signature_text, body.observations
        )
        _schedule_delivery(background_tasks, mailer, kind, term, session_factory)
        return term

    @router.get("/as-donor", response_model=List[response_schema])
    def list_as_donor(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
        """Terms signed for the caller's pets."""
        return TermService(db).find_by_donor(kind, current_user.id)

    @router.get("/as-adopter", response_model=List[response_schema])
    def list_as_adopter(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
        return TermService(db).find_by_adopter(kind, current_user.id)

    @router.get("/stats", response_model=TermStatsResponse)
    def stats(db: Session = Depends(get_db)):
        return TermService(db).term_stats(kind)

    @router.get("/eligibility/{pet_id}", response_model=EligibilityResponse)
    def eligibility(pet_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
        """Whether the caller can sign, or must resync, a term for this pet."""
        return TermService(db).adoption_eligibility(kind, pet_id, current_user.id)

    @router.get("/pet/{pet_id}", response_model=response_schema)
    def get_by_pet(pet_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
        service = TermService(db)
        term = service.find_by_pet(kind, pet_id)
        if term is None:
            raise NotFoundError("No term for this pet", {"pet_id": pet_id})
        return service.get_term_for_party(kind, term.id, current_user.id)

    @router.get("/{term_id}", response_model=response_schema)
    def get_term(term_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
        return TermService(db).get_term_for_party(kind, term_id, current_user.id)

    @router.put("/{term_id}/resync", response_model=response_schema)
    def resync_term(
        term_id: int,
        body: PetTransferTermResync,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
        mailer: Mailer = Depends(get_mailer),
        session_factory=Depends(get_session_factory)
    ):
        """
        Re-sign a term with the adopter's current profile data.
        Pet and donor data stay as originally signed.
        """
        adopter_id = _resolve_adopter(body.adopter_id, current_user)
        fallback = body.adopter.model_dump(exclude_none=True) if body.adopter else None
        term = TermService(db).resync_adopter(
            kind, term_id, adopter_id, body.signature_text, body.observations, fallback
        )
        _schedule_delivery(background_tasks, mailer, kind, term, session_factory)
        return term

    @router.get("/{term_id}/validate", response_model=IntegrityResponse)
    def validate_term(term_id: int, db: Session = Depends(get_db)):
        """Recompute the document hash and compare it with the stored one."""
        term, valid = TermService(db).check_integrity(kind, term_id)
        return IntegrityResponse(valid=valid, signed_at=term.signed_at, document_hash=term.document_hash)

    @router.get("/{term_id}/pdf")
    def download_pdf(term_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
        """Only the parties of the term may download it."""
        return _pdf_response(kind, TermService(db).get_term_for_party(kind, term_id, current_user.id))

    @router.post("/{term_id}/send-email", response_model=EmailSentResponse)
    def send_email(
        term_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
        mailer: Mailer = Depends(get_mailer)
    ):
        """Resend the term by email now. Delivery errors are reported to the caller."""
        service = TermService(db)
        term = service.get_term_for_party(kind, term_id, current_user.id)
        sent = deliver_pet_transfer_term(mailer, kind, term, render_term_pdf(kind, term))
        if sent:
            service.record_emailed(term, sent, current_user.id)
        return EmailSentResponse(sent_to=sent)

    return router


adoption_router = pet_transfer_router("/adoption-terms", TermKind.ADOPTION, AdoptionTermResponse)
compromise_router = pet_transfer_router("/compromise-terms", TermKind.COMPROMISE, CompromiseTermResponse)

donation_router = APIRouter(prefix="/donation-terms", tags=["donation-terms"])


def _commitments(body) -> dict:
    return {flag: getattr(body, flag) for flag in COMMITMENT_FLAGS}


@donation_router.post("", response_model=DonationTermResponse, status_code=status.HTTP_201_CREATED)
def create_donation_term(
    body: DonationTermCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    mailer: Mailer = Depends(get_mailer),
    session_factory=Depends(get_session_factory)
):
    """
    Sign the caller's donation term.

    WILL REFUSE if:
    - Any of the six commitments is not accepted
    - The caller already signed one (resync it instead)
    """
    term = TermService(db).create_donation_term(
        current_user.id,
        body.signature_text,
        body.donation_reason,
        _commitments(body),
        body.adoption_conditions,
        body.observations
    )
    _schedule_delivery(background_tasks, mailer, TermKind.DONATION, term, session_factory)
    return term


@donation_router.get("/mine", response_model=DonationTermResponse)
def my_donation_term(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    term = TermService(db).find_donation_term(current_user.id)
    if term is None:
        raise NotFoundError("You have not signed a donation term", {"donor_id": current_user.id})
    return term


@donation_router.get("/can-register-pets", response_model=RegistrationEligibilityResponse)
def can_register_pets(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return TermService(db).can_register_pets(current_user.id)


@donation_router.get("/stats", response_model=TermStatsResponse)
def donation_stats(db: Session = Depends(get_db)):
    return TermService(db).term_stats(TermKind.DONATION)


@donation_router.get("/{term_id}", response_model=DonationTermResponse)
def get_donation_term(term_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return TermService(db).get_term_for_party(TermKind.DONATION, term_id, current_user.id)


@donation_router.put("/{term_id}/resync", response_model=DonationTermResponse)
def resync_donation_term(
    term_id: int,
    body: DonationTermCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    mailer: Mailer = Depends(get_mailer),
    session_factory=Depends(get_session_factory)
):
    """Re-sign the donation term with the donor's current profile data."""
    term = TermService(db).resync_donor(
        term_id,
        current_user.id,
        body.signature_text,
        body.donation_reason,
        _commitments(body),
        body.adoption_conditions,
        body.observations
    )
    _schedule_delivery(background_tasks, mailer, TermKind.DONATION, term, session_factory)
    return term


@donation_router.get("/{term_id}/validate", response_model=IntegrityResponse)
def validate_donation_term(term_id: int, db: Session = Depends(get_db)):
    term, valid = TermService(db).check_integrity(TermKind.DONATION, term_id)
    return IntegrityResponse(valid=valid, signed_at=term.signed_at, document_hash=term.document_hash)


@donation_router.get("/{term_id}/pdf")
def download_donation_pdf(
    term_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    term = TermService(db).get_term_for_party(TermKind.DONATION, term_id, current_user.id)
    return _pdf_response(TermKind.DONATION, term)


@donation_router.post("/{term_id}/send-email", response_model=EmailSentResponse)
def send_donation_email(
    term_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    mailer: Mailer = Depends(get_mailer)
):
    """Email the donation term to the donor and mark it as sent."""
    service = TermService(db)
    term = service.get_term_for_party(TermKind.DONATION, term_id, current_user.id)
    sent = deliver_donation_term(mailer, term, render_term_pdf(TermKind.DONATION, term))
    if sent:
        service.mark_pdf_sent(term)
        service.record_emailed(term, sent, current_user.id)
    return EmailSentResponse(sent_to=sent)
