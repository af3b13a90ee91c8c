"""Reference tables. Plain rows, no behaviour."""
from sqlalchemy import Column, String, Integer, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from petsup.database import Base
from petsup.models.enums import AgeUnit


class Species(Base):
    __tablename__ = "species"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)

    breeds = relationship("Breed", back_populates="species", cascade="all, delete-orphan")


class Breed(Base):
    __tablename__ = "breeds"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    species_id = Column(Integer, ForeignKey("species.id"), nullable=False, index=True)

    species = relationship("Species", back_populates="breeds")


class State(Base):
    __tablename__ = "states"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    code = Column(String(2), nullable=False, unique=True)  # UF, e.g. "SP"

    cities = relationship("City", back_populates="state", cascade="all, delete-orphan")


class City(Base):
    __tablename__ = "cities"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    state_id = Column(Integer, ForeignKey("states.id"), nullable=False, index=True)

    state = relationship("State", back_populates="cities")


class AgeBracket(Base):
    """
    Age range used to filter pets. Bounds are inclusive; max_age is None for
    the open-ended oldest bracket.
    """
    __tablename__ = "age_brackets"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    min_age = Column(Integer, nullable=False, default=0)
    max_age = Column(Integer, nullable=True)
    unit = Column(SQLEnum(AgeUnit), nullable=False, default=AgeUnit.YEARS)
    species_id = Column(Integer, ForeignKey("species.id"), nullable=True, index=True)


class Status(Base):
    """Listing status of a pet (available, in process, adopted)."""
    __tablename__ = "statuses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)


class PetSex(Base):
    __tablename__ = "pet_sexes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    description = Column(String(50), nullable=False, unique=True)


class UserSex(Base):
    __tablename__ = "user_sexes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    description = Column(String(50), nullable=False, unique=True)


class Disease(Base):
    """A disease or disability a pet can be linked to."""
    __tablename__ = "diseases"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
