import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from sqlalchemy.exc import InterfaceError, OperationalError

from app.db.init_db import create_database
from app.db.base import Base
from app.db.session import engine
from app.core.config import settings
from app.core.exceptions import BookingEngineError, StoreUnavailable
from app.api.v1.router import api_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Ensure DB exists and create tables
    create_database()
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(exc: BookingEngineError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "detail": exc.detail},
    )


@app.exception_handler(BookingEngineError)
async def booking_engine_exception_handler(request: Request, exc: BookingEngineError) -> JSONResponse:
    """Render booking rule failures with the rule that failed."""
    return _error_response(exc)


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def store_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Store connectivity failures are transient; the caller may retry."""
    logger.error("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(StoreUnavailable("The booking store is temporarily unavailable, please retry"))


app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"Hello": "Campus Sports Booking"}
