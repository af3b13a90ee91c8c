"""Pytest configuration and shared fixtures."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from petsup.auth.security import create_access_token, hash_password
from petsup.database import Base
from petsup.errors import MailDeliveryError
from petsup.models.domain import User, Pet
from petsup.models.lookups import Species, Breed, PetSex, State, City, Status
# Import models to register them with SQLAlchemy Base
from petsup.models import audit, terms  # noqa: F401

PASSWORD = "secret123"


class FakeMailer:
    """Records messages instead of talking to an SMTP server."""

    def __init__(self, configured=True, fail=False):
        self.configured = configured
        self.fail = fail
        self.sent = []

    def send(self, to, subject, html, attachments=None):
        if not self.configured:
            return False
        if self.fail:
            raise MailDeliveryError("Email delivery failed", {"to": to})
        self.sent.append({
            "to": to,
            "subject": subject,
            "html": html,
            "attachments": list(attachments or []),
        })
        return True


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads so the TestClient sees the same data."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create a fresh in-memory database for each test."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def reference_data(db_session):
    """Species, breed, sex, status and two cities in two states."""
    dog = Species(name="Cachorro")
    sp = State(name="São Paulo", code="SP")
    rj = State(name="Rio de Janeiro", code="RJ")
    db_session.add_all([dog, sp, rj])
    db_session.flush()

    data = {
        "species": dog,
        "breed": Breed(name="Labrador", species_id=dog.id),
        "sex": PetSex(description="Macho"),
        "status": Status(name="Disponível"),
        "sp": sp,
        "rj": rj,
        "sao_paulo": City(name="São Paulo", state_id=sp.id),
        "rio": City(name="Rio de Janeiro", state_id=rj.id),
    }
    db_session.add_all(list(data.values()))
    db_session.commit()
    return data


def make_user(db_session, name, email, phone, cpf, city=None):
    user = User(
        name=name,
        email=email,
        phone=phone,
        cpf=cpf,
        password_hash=hash_password(PASSWORD),
        city_id=city.id if city else None,
        state_id=city.state_id if city else None
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def donor(db_session, reference_data):
    return make_user(
        db_session, "João Donor", "joao@example.com", "11987654321", "52998224725",
        city=reference_data["sao_paulo"]
    )


@pytest.fixture
def adopter(db_session, reference_data):
    return make_user(
        db_session, "Maria Silva", "maria@example.com", "21987654321", "11144477735",
        city=reference_data["rio"]
    )


@pytest.fixture
def other_user(db_session, reference_data):
    return make_user(db_session, "Carlos Souza", "carlos@example.com", "3133334444", "12345678909")


@pytest.fixture
def pet(db_session, reference_data, donor):
    pet = Pet(
        name="Rex",
        age=3,
        donation_reason="Mudança de cidade",
        species_id=reference_data["species"].id,
        breed_id=reference_data["breed"].id,
        sex_id=reference_data["sex"].id,
        status_id=reference_data["status"].id,
        city_id=reference_data["sao_paulo"].id,
        owner_id=donor.id
    )
    db_session.add(pet)
    db_session.commit()
    db_session.refresh(pet)
    return pet


@pytest.fixture
def fake_mailer():
    return FakeMailer()


@pytest.fixture
def client(db_session, session_factory, fake_mailer):
    """TestClient wired to the test database and the fake mailer."""
    from petsup.main import app
    from petsup.api.deps import get_mailer, get_session_factory
    from petsup.database import get_db

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_mailer] = lambda: fake_mailer
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest.fixture
def donor_headers(donor):
    return auth_headers(donor)


@pytest.fixture
def adopter_headers(adopter):
    return auth_headers(adopter)
