"""
Integrity hash for commitment terms.

The hash is a tamper-evidence checksum over a fixed, order-sensitive
concatenation of snapshot and signature fields. It is not a security
credential, so a fast digest (MD5) is enough.

    adoption / compromise: pet_name + donor_name + adopter_name + signature_text + signed_at
    donation:              donor_name + donor_email + signature_text + signed_at + donation_reason

signed_at is rendered with datetime.isoformat().
"""
import hashlib
from datetime import datetime
from typing import Optional

from petsup.models.terms import DonationTerm


def _stamp(signed_at: Optional[datetime]) -> str:
    return signed_at.isoformat() if signed_at else ""


def hash_material(term) -> str:
    """Return the exact string the hash is computed over."""
    if isinstance(term, DonationTerm):
        parts = [
            term.donor_name,
            term.donor_email,
            term.signature_text,
            _stamp(term.signed_at),
            term.donation_reason,
        ]
    else:
        parts = [
            term.pet_name,
            term.donor_name,
            term.adopter_name,
            term.signature_text,
            _stamp(term.signed_at),
        ]
    return "".join(part or "" for part in parts)


def compute_hash(term) -> str:
    """Compute the integrity hash of a term from its current fields."""
    material = hash_material(term).encode("utf-8")
    return hashlib.md5(material, usedforsecurity=False).hexdigest()


def verify_integrity(term) -> bool:
    """True when the stored hash equals a fresh recomputation."""
    if not term.document_hash:
        return False
    return compute_hash(term) == term.document_hash
