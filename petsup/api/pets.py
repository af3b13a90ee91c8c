"""Pet listing, disease link and favorite endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from petsup.api.schemas import (
    PetCreate,
    PetUpdate,
    PetResponse,
    PetDiseaseCreate,
    PetDiseaseResponse,
    FavoriteCreate,
    FavoriteResponse
)
from petsup.auth.deps import get_current_user
from petsup.database import get_db
from petsup.models.domain import User
from petsup.services.pets import PetService

router = APIRouter(prefix="/pets", tags=["pets"])
favorites_router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.get("", response_model=List[PetResponse])
def list_pets(
    owner_id: Optional[int] = None,
    status_id: Optional[int] = None,
    breed_id: Optional[int] = None,
    species_id: Optional[int] = None,
    city_id: Optional[int] = None,
    state_id: Optional[int] = None,
    age_bracket_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """List pets, newest first. Every filter is optional and they combine with AND."""
    return PetService(db).list(
        owner_id=owner_id,
        status_id=status_id,
        breed_id=breed_id,
        species_id=species_id,
        city_id=city_id,
        state_id=state_id,
        age_bracket_id=age_bracket_id
    )


@router.get("/mine", response_model=List[PetResponse])
def list_my_pets(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return PetService(db).list(owner_id=current_user.id)


@router.get("/{pet_id}", response_model=PetResponse)
def get_pet(pet_id: int, db: Session = Depends(get_db)):
    return PetService(db).get(pet_id)


@router.post("", response_model=PetResponse, status_code=status.HTTP_201_CREATED)
def create_pet(body: PetCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """List a pet for adoption. The caller becomes its owner and the donor of any term signed for it."""
    return PetService(db).create(current_user, body.model_dump())


@router.put("/{pet_id}", response_model=PetResponse)
def update_pet(
    pet_id: int,
    body: PetUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return PetService(db).update(pet_id, current_user, body.model_dump(exclude_unset=True))


@router.delete("/{pet_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_pet(pet_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    PetService(db).delete(pet_id, current_user)


@router.get("/{pet_id}/diseases", response_model=List[PetDiseaseResponse])
def list_pet_diseases(pet_id: int, db: Session = Depends(get_db)):
    return PetService(db).list_diseases(pet_id)


@router.post("/{pet_id}/diseases", response_model=PetDiseaseResponse, status_code=status.HTTP_201_CREATED)
def link_pet_disease(
    pet_id: int,
    body: PetDiseaseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return PetService(db).link_disease(pet_id, current_user, body.disease_id, body.present, body.notes)


@router.delete("/{pet_id}/diseases/{disease_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_pet_disease(
    pet_id: int,
    disease_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    PetService(db).unlink_disease(pet_id, current_user, disease_id)


@favorites_router.get("", response_model=List[FavoriteResponse])
def list_favorites(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return PetService(db).list_favorites(current_user)


@favorites_router.post("", response_model=FavoriteResponse, status_code=status.HTTP_201_CREATED)
def add_favorite(body: FavoriteCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return PetService(db).add_favorite(current_user, body.pet_id)


@favorites_router.delete("/{pet_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_favorite(pet_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    PetService(db).remove_favorite(current_user, pet_id)
