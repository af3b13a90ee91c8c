"""Enums for PetSup - term variants, documents and eligibility reasons."""
from enum import Enum


class TermKind(str, Enum):
    """The three commitment-term variants."""
    ADOPTION = "adoption"
    COMPROMISE = "compromise"
    DONATION = "donation"


class DocumentType(str, Enum):
    """Identity documents captured in a party snapshot."""
    CPF = "CPF"


class AgeUnit(str, Enum):
    """Unit of the bounds of an age bracket."""
    MONTHS = "meses"
    YEARS = "anos"


class EligibilityReason(str, Enum):
    """Why a user may not sign an adoption term for a pet."""
    OWN_PET = "own_pet"
    ALREADY_ADOPTED = "already_adopted"
    NAME_OUTDATED = "name_outdated"
