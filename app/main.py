import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.v1.router import router as api_v1_router
from app.core.config import settings as app_settings
from app.core.exceptions import (
    AlreadyAssignedError,
    CapacityExceededError,
    InvalidLeadDataError,
    LeadDistributionError,
    NoEligibleAgencyError,
    NotFoundError,
    PersistenceError,
)
from app.core.rate_limit import limiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Lead Distribution Engine",
    description=(
        "Routes marketplace leads to agencies that own the lead's territory, "
        "with round-robin fairness and plan capacity limits"
    ),
    version="0.1.0",
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware – restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


def _error_response(status_code: int, exc: LeadDistributionError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.detail, "type": exc.reason},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.warning("Not found: %s", exc.detail)
    return _error_response(404, exc)


@app.exception_handler(AlreadyAssignedError)
async def already_assigned_handler(request: Request, exc: AlreadyAssignedError):
    logger.warning("Already assigned: %s", exc.detail)
    return _error_response(409, exc)


@app.exception_handler(NoEligibleAgencyError)
async def no_eligible_agency_handler(request: Request, exc: NoEligibleAgencyError):
    logger.warning("No eligible agency: %s", exc.detail)
    return _error_response(422, exc)


@app.exception_handler(CapacityExceededError)
async def capacity_exceeded_handler(request: Request, exc: CapacityExceededError):
    logger.warning("Capacity exceeded: %s", exc.detail)
    return _error_response(409, exc)


@app.exception_handler(InvalidLeadDataError)
async def invalid_lead_data_handler(request: Request, exc: InvalidLeadDataError):
    logger.warning("Invalid lead data: %s", exc.detail)
    return _error_response(422, exc)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("Persistence failure: %s", exc.detail)
    return _error_response(503, exc)


@app.exception_handler(LeadDistributionError)
async def distribution_error_handler(request: Request, exc: LeadDistributionError):
    logger.error("Distribution error: %s", exc.detail)
    return _error_response(500, exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": jsonable_encoder(exc.errors()),
            "type": "validation_error",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )
