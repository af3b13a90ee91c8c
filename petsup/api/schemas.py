"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field
from petsup.models.enums import AgeUnit


class MessageResponse(BaseModel):
    message: str


# Auth schemas
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class RecoveryRequest(BaseModel):
    email: EmailStr


class RecoveryVerify(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6)


class RecoveryReset(RecoveryVerify):
    new_password: str = Field(..., min_length=6, max_length=72)


class RecoveryIssued(BaseModel):
    """Returned after a recovery request. The code itself only travels by email."""
    message: str
    expires_at: datetime
    email_sent: bool


# User schemas
class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=10, max_length=20)
    cpf: str = Field(..., min_length=11, max_length=14)
    password: str = Field(..., min_length=6, max_length=72)
    zip_code: Optional[str] = Field(None, max_length=9)
    sex_id: Optional[int] = None
    city_id: Optional[int] = None
    state_id: Optional[int] = None


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    cpf: Optional[str] = Field(None, min_length=11, max_length=14)
    password: Optional[str] = Field(None, min_length=6, max_length=72)
    zip_code: Optional[str] = Field(None, max_length=9)
    sex_id: Optional[int] = None
    city_id: Optional[int] = None
    state_id: Optional[int] = None


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    cpf: str
    zip_code: Optional[str]
    sex_id: Optional[int]
    city_id: Optional[int]
    state_id: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class AvailabilityResponse(BaseModel):
    """True means the value is free to register."""
    email: Optional[bool] = None
    cpf: Optional[bool] = None
    phone: Optional[bool] = None


# Lookup schemas
class SpeciesCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class SpeciesResponse(SpeciesCreate):
    id: int

    class Config:
        from_attributes = True


class BreedCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    species_id: int


class BreedResponse(BreedCreate):
    id: int

    class Config:
        from_attributes = True


class StateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=2, max_length=2)


class StateResponse(StateCreate):
    id: int

    class Config:
        from_attributes = True


class CityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    state_id: int


class CityResponse(CityCreate):
    id: int

    class Config:
        from_attributes = True


class AgeBracketCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    min_age: int = Field(0, ge=0)
    max_age: Optional[int] = Field(None, ge=0)
    unit: AgeUnit = AgeUnit.YEARS
    species_id: Optional[int] = None


class AgeBracketResponse(AgeBracketCreate):
    id: int

    class Config:
        from_attributes = True


class StatusCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class StatusResponse(StatusCreate):
    id: int

    class Config:
        from_attributes = True


class SexCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=50)


class SexResponse(SexCreate):
    id: int

    class Config:
        from_attributes = True


class DiseaseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class DiseaseResponse(DiseaseCreate):
    id: int

    class Config:
        from_attributes = True


# Pet schemas
class PetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    age: int = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    donation_reason: Optional[str] = Field(None, max_length=255)
    species_id: int
    breed_id: int
    sex_id: int
    age_bracket_id: Optional[int] = None
    status_id: Optional[int] = None
    city_id: Optional[int] = None


class PetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    age: Optional[int] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=1)
    donation_reason: Optional[str] = Field(None, max_length=255)
    species_id: Optional[int] = None
    breed_id: Optional[int] = None
    sex_id: Optional[int] = None
    age_bracket_id: Optional[int] = None
    status_id: Optional[int] = None
    city_id: Optional[int] = None


class PetResponse(BaseModel):
    id: int
    name: str
    age: int
    quantity: int
    donation_reason: Optional[str]
    species_id: int
    breed_id: int
    sex_id: int
    age_bracket_id: Optional[int]
    status_id: Optional[int]
    city_id: Optional[int]
    owner_id: Optional[int]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PetDiseaseCreate(BaseModel):
    disease_id: int
    present: bool = True
    notes: Optional[str] = Field(None, max_length=500)


class PetDiseaseResponse(BaseModel):
    pet_id: int
    disease_id: int
    present: bool
    notes: Optional[str]

    class Config:
        from_attributes = True


# Favorite schemas
class FavoriteCreate(BaseModel):
    pet_id: int


class FavoriteResponse(BaseModel):
    id: int
    user_id: int
    pet_id: int
    created_at: datetime
    pet: PetResponse

    class Config:
        from_attributes = True


# Term schemas
class PetTransferTermCreate(BaseModel):
    pet_id: int
    adopter_id: Optional[int] = None  # defaults to the caller
    signature_text: str = Field(..., min_length=1, max_length=255)
    observations: Optional[str] = Field(None, max_length=2000)


class AdopterFallback(BaseModel):
    """Client-provided adopter data, used only where the live profile is empty."""
    adopter_name: Optional[str] = None
    adopter_email: Optional[str] = None
    adopter_phone: Optional[str] = None
    adopter_document: Optional[str] = None
    adopter_city_id: Optional[int] = None
    adopter_city_name: Optional[str] = None
    adopter_state_id: Optional[int] = None
    adopter_state_name: Optional[str] = None


class PetTransferTermResync(BaseModel):
    adopter_id: Optional[int] = None
    signature_text: str = Field(..., min_length=1, max_length=255)
    observations: Optional[str] = Field(None, max_length=2000)
    adopter: Optional[AdopterFallback] = None


class CompromiseTermResponse(BaseModel):
    id: int
    pet_id: int
    donor_id: int
    adopter_id: int
    pet_name: str
    pet_species_id: int
    pet_species_name: str
    pet_breed_id: int
    pet_breed_name: str
    pet_age: int
    pet_sex_id: int
    pet_sex_name: str
    pet_donation_reason: Optional[str]
    donor_name: str
    donor_email: str
    donor_phone: Optional[str]
    adopter_name: str
    adopter_email: str
    adopter_phone: Optional[str]
    adopter_document: Optional[str]
    adopter_document_type: Optional[str]
    adopter_city_id: Optional[int]
    adopter_city_name: Optional[str]
    adopter_state_id: Optional[int]
    adopter_state_name: Optional[str]
    signature_text: str
    signed_at: datetime
    observations: Optional[str]
    document_hash: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AdoptionTermResponse(CompromiseTermResponse):
    donor_city_id: Optional[int]
    donor_city_name: Optional[str]
    donor_state_id: Optional[int]
    donor_state_name: Optional[str]


class DonationTermCreate(BaseModel):
    signature_text: str = Field(..., min_length=1, max_length=255)
    donation_reason: str = Field(..., min_length=1, max_length=500)
    adoption_conditions: Optional[str] = Field(None, max_length=2000)
    observations: Optional[str] = Field(None, max_length=2000)
    confirms_legal_guardian: bool = False
    allows_visits: bool = False
    accepts_follow_up: bool = False
    confirms_health_info: bool = False
    allows_background_check: bool = False
    commits_to_contact: bool = False


class DonationTermResponse(BaseModel):
    id: int
    donor_id: int
    donor_name: str
    donor_email: str
    donor_phone: Optional[str]
    donor_document: Optional[str]
    donor_document_type: Optional[str]
    donor_city_id: Optional[int]
    donor_city_name: Optional[str]
    donor_state_id: Optional[int]
    donor_state_name: Optional[str]
    donation_reason: str
    adoption_conditions: Optional[str]
    observations: Optional[str]
    confirms_legal_guardian: bool
    allows_visits: bool
    accepts_follow_up: bool
    confirms_health_info: bool
    allows_background_check: bool
    commits_to_contact: bool
    signature_text: str
    signed_at: datetime
    document_hash: Optional[str]
    pdf_sent_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class IntegrityResponse(BaseModel):
    valid: bool
    signed_at: datetime
    document_hash: Optional[str]


class EligibilityResponse(BaseModel):
    can_adopt: bool
    has_term: bool
    name_outdated: bool
    reason: Optional[str] = None


class RegistrationEligibilityResponse(BaseModel):
    can_register: bool
    has_term: bool
    name_outdated: bool


class TermStatsResponse(BaseModel):
    total: int
    today: int
    this_month: int


class EmailSentResponse(BaseModel):
    sent_to: List[str]
