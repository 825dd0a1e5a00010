"""
Main FastAPI application entry point.
Sets up the API, error handlers, and routes.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import PaymentError
from app.core.logging_config import setup_logging
from app.database import engine, Base
from app.api import accounts, payments
from app.services.locks import AccountLockRegistry
from app.store.memory import InMemoryLedgerStore

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.DESCRIPTION,
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc"  # ReDoc UI
)

# Process-wide collaborators shared by all requests
app.state.account_locks = AccountLockRegistry(timeout_seconds=settings.STORE_TIMEOUT_SECONDS)
app.state.memory_store = InMemoryLedgerStore()


@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"errorMessage": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "invalid request body"
    logger.warning("request_rejected path=%s reason=%s", request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"errorMessage": message},
    )


@app.get("/")
def root():
    """
    Root endpoint - service check.
    """
    return {
        "message": "Payment Posting Service",
        "version": settings.VERSION,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "payments": f"{settings.API_V1_PREFIX}/payments",
            "accounts": f"{settings.API_V1_PREFIX}/accounts"
        }
    }


@app.get("/health")
def health_check():
    """
    Health check endpoint for monitoring.
    """
    return {
        "status": "healthy",
        "ledger_backend": settings.LEDGER_BACKEND
    }


# Include API routers
app.include_router(payments.router, prefix=settings.API_V1_PREFIX)
app.include_router(accounts.router, prefix=settings.API_V1_PREFIX)
