"""Main FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from petsup.config import settings
from petsup.database import engine, Base, SessionLocal
from petsup.errors import PetSupError
from petsup.api.routes import router
from petsup.seed import seed_reference_data
from petsup.services.mailer import Mailer
# Import models to register them with SQLAlchemy Base
from petsup.models import audit, domain, lookups, terms  # noqa: F401

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables and load reference data on first start
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_reference_data(db)
    finally:
        db.close()

    app.state.mailer = Mailer(settings.mail_settings())
    if not app.state.mailer.configured:
        logger.warning("SMTP credentials not set; term emails will be skipped")
    yield


def _petsup_error_handler(_request: Request, exc: PetSupError) -> JSONResponse:
    """Map service-layer errors to their status code."""
    if exc.status_code >= 500:
        logger.error("%s: %s %s", type(exc).__name__, exc.message, exc.details)
    else:
        logger.warning("%s: %s %s", type(exc).__name__, exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def _unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Return 500 JSON without exposing internal details."""
    logger.error("unhandled error: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Create FastAPI app
app = FastAPI(
    title="PetSup - Pet Adoption Platform",
    description="Users, pet listings and the commitment terms signed when a pet is adopted.",
    version="0.1.0",
    lifespan=lifespan
)

app.add_exception_handler(PetSupError, _petsup_error_handler)
app.add_exception_handler(Exception, _unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api")


# Health check
@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "PetSup"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
