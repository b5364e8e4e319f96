import logging

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = 'Internal server error'


def store_failure(db: Session | None, exc: SQLAlchemyError, action: str) -> HTTPException:
    """Roll back, log, and build the 500 returned for an unexpected store error."""
    logger.exception('Store failure while %s: %s', action, exc)
    if db is not None:
        db.rollback()
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=INTERNAL_ERROR_DETAIL,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body = {'message': exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, 'headers', None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Rejected input is not echoed back; it may be NaN, which is not valid JSON.
    errors = [{key: value for key, value in error.items() if key != 'input'} for error in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'message': 'Validation failed', 'error': jsonable_encoder(errors)},
    )


async def unhandled_store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception('Unhandled store error on %s %s', request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'message': INTERNAL_ERROR_DETAIL, 'error': exc.__class__.__name__},
    )
