import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import models to ensure they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, LOG_LEVEL
from .database import Base, engine
from .domain.bookings.router import router as bookings_router
from .domain.bookings.router import series_router
from .domain.halls.router import router as halls_router
from .exceptions import BookingError, PartialWriteError

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Hall Booking API", version="1.0.0", lifespan=lifespan)


def jsonable_errors(errors: list) -> list:
    # ctx may carry exception instances that JSON can't encode
    return [{k: v for k, v in err.items() if k != "ctx"} for err in errors]


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Render engine errors as {error, kind, ...context} with the error's status"""
    if isinstance(exc, PartialWriteError):
        logger.critical(f"{request.method} {request.url.path} - {exc.message} {exc.context}")
    else:
        logger.info(f"{request.method} {request.url.path} - {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies get the same error shape as engine validation errors"""
    errors = exc.errors()
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid input: {location} {first.get('msg', '')}".strip()
    return JSONResponse(
        status_code=422,
        content={"error": message, "kind": "ValidationError", "detail": jsonable_errors(errors)},
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(halls_router)
app.include_router(bookings_router)
app.include_router(series_router)


@app.get("/")
def root():
    return {"message": "Hall Booking API is running"}


@app.get("/health")
def health():
    return {"status": "healthy", "time": datetime.now().isoformat()}
