import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from payhub.api.auth import router as auth_router
from payhub.api.cards import router as cards_router
from payhub.api.contacts import router as contacts_router
from payhub.api.wallet import router as wallet_router
from payhub.core.config import settings
from payhub.core.logging import configure_logging
from payhub.ledger.errors import (
    AccountNotFound,
    CardNotFound,
    ContactNotFound,
    DuplicateAccount,
    InsufficientFunds,
    InvalidIntent,
    LedgerError,
    PersistenceFailure,
)

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidIntent: status.HTTP_400_BAD_REQUEST,
    InsufficientFunds: status.HTTP_400_BAD_REQUEST,
    AccountNotFound: status.HTTP_404_NOT_FOUND,
    CardNotFound: status.HTTP_404_NOT_FOUND,
    ContactNotFound: status.HTTP_404_NOT_FOUND,
    DuplicateAccount: status.HTTP_409_CONFLICT,
    PersistenceFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}

app = FastAPI(title="PayHub API", version="1.0.0")

@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"message": exc.message, "code": exc.code},
    )

@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    # extract first error message nicely
    errors = exc.errors()
    error_msg = errors[0]["msg"] if errors else "Invalid input"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": error_msg, "code": "INVALID_REQUEST"},
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail, "code": "HTTP_ERROR"},
        headers=getattr(exc, "headers", None),
    )

app.include_router(auth_router, tags=["auth"])
app.include_router(wallet_router, tags=["wallet"])
app.include_router(cards_router, tags=["cards"])
app.include_router(contacts_router, tags=["contacts"])

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
    https_only=False # True in production
)

@app.get("/health")
def health():
    return {"status": "ok"}
