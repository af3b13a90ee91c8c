"""CRUD endpoints for the reference tables, one router per table built from a single factory."""
from typing import Dict, List, Optional, Type

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from petsup.api.schemas import (
    SpeciesCreate,
    SpeciesResponse,
    BreedCreate,
    BreedResponse,
    StateCreate,
    StateResponse,
    CityCreate,
    CityResponse,
    AgeBracketCreate,
    AgeBracketResponse,
    StatusCreate,
    StatusResponse,
    SexCreate,
    SexResponse,
    DiseaseCreate,
    DiseaseResponse
)
from petsup.auth.deps import get_current_user
from petsup.database import get_db
from petsup.errors import ConflictError, NotFoundError
from petsup.models.domain import User
from petsup.models.lookups import (
    Species,
    Breed,
    State,
    City,
    AgeBracket,
    Status,
    PetSex,
    UserSex,
    Disease
)


def lookup_router(
    path: str,
    model,
    create_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
    filter_field: Optional[str] = None,
    parents: Optional[Dict[str, object]] = None
) -> APIRouter:
    """
    Build list/get/create/update/delete endpoints for a reference table.

    `filter_field` adds an optional query parameter of the same name to the
    list endpoint; `parents` maps foreign-key fields to the model they must exist in.
    """
    router = APIRouter(prefix=path, tags=["lookups"])
    label = model.__name__
    parents = parents or {}

    def fetch(db: Session, item_id: int):
        item = db.get(model, item_id)
        if not item:
            raise NotFoundError(f"{label} not found", {"id": item_id})
        return item

    def check_parents(db: Session, data: dict) -> None:
        for field, parent in parents.items():
            value = data.get(field)
            if value is not None and not db.get(parent, value):
                raise NotFoundError(f"{parent.__name__} not found", {field: value})

    def save(db: Session, item):
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ConflictError(f"{label} already exists") from e
        db.refresh(item)
        return item

    if filter_field:
        @router.get("", response_model=List[response_schema])
        def list_items(
            parent_id: Optional[int] = Query(None, alias=filter_field),
            db: Session = Depends(get_db)
        ):
            query = db.query(model)
            if parent_id is not None:
                query = query.filter(getattr(model, filter_field) == parent_id)
            return query.order_by(model.id).all()
    else:
        @router.get("", response_model=List[response_schema])
        def list_items(db: Session = Depends(get_db)):
            return db.query(model).order_by(model.id).all()

    @router.get("/{item_id}", response_model=response_schema)
    def get_item(item_id: int, db: Session = Depends(get_db)):
        return fetch(db, item_id)

    @router.post("", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    def create_item(
        body: create_schema,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        data = body.model_dump()
        check_parents(db, data)
        item = model(**data)
        db.add(item)
        return save(db, item)

    @router.put("/{item_id}", response_model=response_schema)
    def update_item(
        item_id: int,
        body: create_schema,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        item = fetch(db, item_id)
        data = body.model_dump()
        check_parents(db, data)
        for key, value in data.items():
            setattr(item, key, value)
        return save(db, item)

    @router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_item(
        item_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        db.delete(fetch(db, item_id))
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ConflictError(f"{label} is still in use", {"id": item_id}) from e

    return router


routers = [
    lookup_router("/species", Species, SpeciesCreate, SpeciesResponse),
    lookup_router("/breeds", Breed, BreedCreate, BreedResponse,
                  filter_field="species_id", parents={"species_id": Species}),
    lookup_router("/states", State, StateCreate, StateResponse),
    lookup_router("/cities", City, CityCreate, CityResponse,
                  filter_field="state_id", parents={"state_id": State}),
    lookup_router("/age-brackets", AgeBracket, AgeBracketCreate, AgeBracketResponse,
                  filter_field="species_id", parents={"species_id": Species}),
    lookup_router("/status", Status, StatusCreate, StatusResponse),
    lookup_router("/pet-sexes", PetSex, SexCreate, SexResponse),
    lookup_router("/user-sexes", UserSex, SexCreate, SexResponse),
    lookup_router("/diseases", Disease, DiseaseCreate, DiseaseResponse),
]
