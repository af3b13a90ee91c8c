"""Pet listings, their disease links and user favorites."""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from petsup.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from petsup.models.domain import Favorite, Pet, PetDisease, User
from petsup.models.lookups import AgeBracket, Breed, City, Disease, PetSex, Species, Status

logger = logging.getLogger(__name__)

# Filter name -> Pet column; state_id is resolved through the pet's city
PET_FILTERS = ("owner_id", "status_id", "breed_id", "species_id", "city_id", "age_bracket_id")

_REFERENCES = {
    "species_id": Species,
    "breed_id": Breed,
    "sex_id": PetSex,
    "age_bracket_id": AgeBracket,
    "status_id": Status,
    "city_id": City,
}


class PetService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, pet_id: int) -> Pet:
        pet = self.db.get(Pet, pet_id)
        if not pet:
            raise NotFoundError("Pet not found", {"pet_id": pet_id})
        return pet

    def list(self, state_id: Optional[int] = None, **filters) -> List[Pet]:
        query = self.db.query(Pet)
        for name in PET_FILTERS:
            value = filters.get(name)
            if value is not None:
                query = query.filter(getattr(Pet, name) == value)
        if state_id is not None:
            query = query.join(City, Pet.city_id == City.id).filter(City.state_id == state_id)
        return query.order_by(Pet.created_at.desc(), Pet.id.desc()).all()

    def create(self, owner: User, data: dict) -> Pet:
        self._check_references(data)
        pet = Pet(**data, owner_id=owner.id)
        self.db.add(pet)
        self.db.commit()
        self.db.refresh(pet)
        logger.info("pet %s listed by user %s", pet.id, owner.id)
        return pet

    def update(self, pet_id: int, owner: User, data: dict) -> Pet:
        pet = self.get_owned(pet_id, owner)
        fields = {k: v for k, v in data.items() if v is not None}
        self._check_references({**_current_refs(pet), **fields})
        for key, value in fields.items():
            setattr(pet, key, value)
        self.db.commit()
        self.db.refresh(pet)
        return pet

    def delete(self, pet_id: int, owner: User) -> None:
        """Delete a pet together with its disease links, favorites and terms."""
        pet = self.get_owned(pet_id, owner)
        self.db.delete(pet)
        self.db.commit()
        logger.info("pet %s deleted by user %s", pet_id, owner.id)

    def get_owned(self, pet_id: int, owner: User) -> Pet:
        pet = self.get(pet_id)
        if pet.owner_id != owner.id:
            raise AuthorizationError("Only the pet's owner can change it", {"pet_id": pet_id})
        return pet

    # ------------------------------------------------------------------
    # Diseases / disabilities
    # ------------------------------------------------------------------

    def list_diseases(self, pet_id: int) -> List[PetDisease]:
        return self.get(pet_id).diseases

    def link_disease(self, pet_id: int, owner: User, disease_id: int,
                     present: bool = True, notes: Optional[str] = None) -> PetDisease:
        """Attach a disease to a pet, or update the existing link."""
        pet = self.get_owned(pet_id, owner)
        if not self.db.get(Disease, disease_id):
            raise NotFoundError("Disease not found", {"disease_id": disease_id})

        link = self.db.get(PetDisease, (pet.id, disease_id))
        if link is None:
            link = PetDisease(pet_id=pet.id, disease_id=disease_id)
            self.db.add(link)
        link.present = present
        link.notes = notes
        self.db.commit()
        self.db.refresh(link)
        return link

    def unlink_disease(self, pet_id: int, owner: User, disease_id: int) -> None:
        pet = self.get_owned(pet_id, owner)
        link = self.db.get(PetDisease, (pet.id, disease_id))
        if link is None:
            raise NotFoundError("Disease is not linked to this pet", {"disease_id": disease_id})
        self.db.delete(link)
        self.db.commit()

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    def list_favorites(self, user: User) -> List[Favorite]:
        return (
            self.db.query(Favorite)
            .filter(Favorite.user_id == user.id)
            .order_by(Favorite.created_at.desc())
            .all()
        )

    def add_favorite(self, user: User, pet_id: int) -> Favorite:
        self.get(pet_id)
        existing = self.db.query(Favorite).filter(
            Favorite.user_id == user.id, Favorite.pet_id == pet_id
        ).first()
        if existing:
            raise ConflictError("Pet is already in your favorites", {"pet_id": pet_id})
        favorite = Favorite(user_id=user.id, pet_id=pet_id)
        self.db.add(favorite)
        self.db.commit()
        self.db.refresh(favorite)
        return favorite

    def remove_favorite(self, user: User, pet_id: int) -> None:
        favorite = self.db.query(Favorite).filter(
            Favorite.user_id == user.id, Favorite.pet_id == pet_id
        ).first()
        if not favorite:
            raise NotFoundError("Favorite not found", {"pet_id": pet_id})
        self.db.delete(favorite)
        self.db.commit()

    def _check_references(self, data: dict) -> None:
        for field, model in _REFERENCES.items():
            value = data.get(field)
            if value is not None and not self.db.get(model, value):
                raise NotFoundError(f"{model.__name__} not found", {field: value})

        breed_id, species_id = data.get("breed_id"), data.get("species_id")
        if breed_id and species_id:
            breed = self.db.get(Breed, breed_id)
            if breed.species_id != species_id:
                raise ValidationError("Breed does not belong to the given species", {"field": "breed_id"})


def _current_refs(pet: Pet) -> dict:
    return {field: getattr(pet, field) for field in _REFERENCES}
