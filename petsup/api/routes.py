"""Aggregates every API router under a single router mounted at /api."""
from fastapi import APIRouter

from petsup.api import auth, lookups, pets, terms, users

router = APIRouter()

router.include_router(auth.router)
router.include_router(users.router)
for lookup in lookups.routers:
    router.include_router(lookup)
router.include_router(pets.router)
router.include_router(pets.favorites_router)
router.include_router(terms.adoption_router)
router.include_router(terms.compromise_router)
router.include_router(terms.donation_router)
