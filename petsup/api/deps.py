"""Shared API dependencies."""
from fastapi import Request

from petsup.database import SessionLocal
from petsup.services.mailer import Mailer


def get_mailer(request: Request) -> Mailer:
    """The mailer built at startup from settings."""
    return request.app.state.mailer


def get_session_factory():
    """Session factory for work that outlives the request, such as background email delivery."""
    return SessionLocal
