"""Map domain exceptions to HTTP responses"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse

from household_ledger.api.dependencies import get_request_id
from household_ledger.domain.exceptions import (
    CategoryInvalidError,
    ConflictError,
    DomainException,
    InvalidError,
    LedgerError,
    NotFoundError,
    PaymentStateError,
)

logger = logging.getLogger(__name__)

# Checked in order; first match wins
STATUS_BY_EXCEPTION = (
    (CategoryInvalidError, 400),
    (NotFoundError, 404),
    (InvalidError, 400),
    (PaymentStateError, 409),
    (LedgerError, 409),
    (ConflictError, 409),
)

RETRY_AFTER_SECONDS = "1"


def status_for(exc: DomainException) -> int:
    for exc_type, status_code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status_code
    return 400


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    status_code = status_for(exc)
    request_id = get_request_id(request)

    if isinstance(exc, ConflictError):
        logger.warning(f"Conflict: {exc}", extra={"request_id": request_id, "path": request.url.path})
    else:
        logger.info(
            f"Request rejected: {exc}",
            extra={"request_id": request_id, "error_code": exc.code, "status": status_code},
        )

    headers = {"Retry-After": RETRY_AFTER_SECONDS} if exc.retryable else None
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message},
        headers=headers,
    )
