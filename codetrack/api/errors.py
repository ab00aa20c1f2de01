"""
Mapping of CodeTrack exceptions onto HTTP responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from codetrack.utils.exceptions import (
    CodeTrackException, ValidationError, UserNotFoundError, NotFoundError,
    RateLimitedError, TransientError, InvalidQueryError, DatabaseError
)

logger = logging.getLogger(__name__)

STATUS_CODES = (
    (RateLimitedError, 429),
    (ValidationError, 400),
    (InvalidQueryError, 400),
    (UserNotFoundError, 404),
    (NotFoundError, 404),
    (TransientError, 503),
    (DatabaseError, 500),
)


def status_for(error: CodeTrackException) -> int:
    for error_class, status in STATUS_CODES:
        if isinstance(error, error_class):
            return status
    return 500


async def codetrack_exception_handler(request: Request, error: CodeTrackException) -> JSONResponse:
    status = status_for(error)
    body = {'success': False, 'message': error.user_message}
    if isinstance(error, RateLimitedError):
        body['remainingTime'] = error.remaining_seconds
    if isinstance(error, NotFoundError) and error.hint:
        body['hint'] = error.hint

    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {error}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status}: {error}")

    headers = {'Retry-After': str(error.remaining_seconds)} if status == 429 else None
    return JSONResponse(status_code=status, content=body, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CodeTrackException, codetrack_exception_handler)
