"""Reference data loaded on first startup."""
import logging

from sqlalchemy.orm import Session

from petsup.models.enums import AgeUnit
from petsup.models.lookups import AgeBracket, PetSex, Species, State, Status, UserSex

logger = logging.getLogger(__name__)

STATUSES = ["Disponível", "Em processo de adoção", "Adotado"]
PET_SEXES = ["Macho", "Fêmea"]
USER_SEXES = ["Masculino", "Feminino", "Outro", "Prefiro não informar"]
SPECIES = ["Cachorro", "Gato"]

# (name, min_age, max_age, unit); applied to every seeded species
AGE_BRACKETS = [
    ("Filhote", 0, 12, AgeUnit.MONTHS),
    ("Jovem", 1, 4, AgeUnit.YEARS),
    ("Adulto", 5, 7, AgeUnit.YEARS),
    ("Sênior", 8, 10, AgeUnit.YEARS),
    ("Idoso", 11, None, AgeUnit.YEARS),
]

STATES = [
    ("Acre", "AC"), ("Alagoas", "AL"), ("Amapá", "AP"), ("Amazonas", "AM"),
    ("Bahia", "BA"), ("Ceará", "CE"), ("Distrito Federal", "DF"),
    ("Espírito Santo", "ES"), ("Goiás", "GO"), ("Maranhão", "MA"),
    ("Mato Grosso", "MT"), ("Mato Grosso do Sul", "MS"), ("Minas Gerais", "MG"),
    ("Pará", "PA"), ("Paraíba", "PB"), ("Paraná", "PR"), ("Pernambuco", "PE"),
    ("Piauí", "PI"), ("Rio de Janeiro", "RJ"), ("Rio Grande do Norte", "RN"),
    ("Rio Grande do Sul", "RS"), ("Rondônia", "RO"), ("Roraima", "RR"),
    ("Santa Catarina", "SC"), ("São Paulo", "SP"), ("Sergipe", "SE"),
    ("Tocantins", "TO"),
]


def seed_reference_data(db: Session) -> bool:
    """Populate empty reference tables. Returns False when data was already present."""
    if db.query(Status).first() is not None:
        return False

    db.add_all(Status(name=name) for name in STATUSES)
    db.add_all(PetSex(description=name) for name in PET_SEXES)
    db.add_all(UserSex(description=name) for name in USER_SEXES)
    db.add_all(State(name=name, code=code) for name, code in STATES)

    for species_name in SPECIES:
        species = Species(name=species_name)
        db.add(species)
        db.flush()
        for name, min_age, max_age, unit in AGE_BRACKETS:
            db.add(AgeBracket(
                name=name, min_age=min_age, max_age=max_age, unit=unit, species_id=species.id
            ))

    db.commit()
    logger.info("reference data seeded")
    return True
