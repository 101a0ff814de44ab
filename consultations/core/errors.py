"""Error taxonomy shared by the services and the HTTP layer.

Every failure a lifecycle operation can detect is raised as a
``BookingError`` subclass. The HTTP layer turns them into a JSON body of the
form ``{"success": false, "code": ..., "message": ...}`` with the error's
status code.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class BookingError(Exception):
    status_code = 500
    code = 'INTERNAL_ERROR'
    default_message = 'Unexpected error.'
    log_level = logging.ERROR

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        content: dict[str, Any] = {'success': False, 'code': self.code, 'message': self.message}
        if self.details:
            content['details'] = self.details
        return JSONResponse(status_code=self.status_code, content=content)


class NotFound(BookingError):
    status_code = 404
    code = 'NOT_FOUND'
    default_message = 'Appointment not found.'
    log_level = logging.INFO


class Forbidden(BookingError):
    status_code = 403
    code = 'FORBIDDEN'
    default_message = 'Not authorized to act on this appointment.'
    log_level = logging.WARNING


class Unauthenticated(BookingError):
    status_code = 401
    code = 'UNAUTHENTICATED'
    default_message = 'Invalid credentials.'
    log_level = logging.WARNING


class InvalidInput(BookingError):
    status_code = 400
    code = 'INVALID_INPUT'
    default_message = 'Invalid input.'
    log_level = logging.WARNING


class MissingField(InvalidInput):
    code = 'MISSING_FIELD'
    default_message = 'Missing required fields.'


class InvalidPackage(InvalidInput):
    code = 'INVALID_PACKAGE'
    default_message = 'Invalid package type.'


class InvalidRating(InvalidInput):
    code = 'INVALID_RATING'
    default_message = 'Rating must be between 1 and 5.'


class TooLate(BookingError):
    status_code = 400
    code = 'TOO_LATE'
    default_message = 'Appointments can only be cancelled 2 hours before the scheduled time.'
    log_level = logging.INFO


class NotCompleted(BookingError):
    status_code = 400
    code = 'NOT_COMPLETED'
    default_message = 'Can only review completed appointments.'
    log_level = logging.INFO


class InvalidTransition(BookingError):
    status_code = 409
    code = 'INVALID_TRANSITION'
    default_message = 'Appointment is not in a state that allows this action.'
    log_level = logging.INFO


class Conflict(BookingError):
    status_code = 409
    code = 'CONFLICT'
    default_message = 'Request conflicts with existing data.'
    log_level = logging.INFO


class PaymentVerificationFailed(BookingError):
    status_code = 400
    code = 'PAYMENT_VERIFICATION_FAILED'
    default_message = 'Payment could not be verified.'
    log_level = logging.WARNING


class BridgeFailure(BookingError):
    status_code = 502
    code = 'BRIDGE_FAILURE'
    default_message = 'External provider request failed.'


class RoomProvisioningFailed(BridgeFailure):
    code = 'ROOM_PROVISIONING_FAILED'
    default_message = 'Failed to create video call room.'


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingError)
    async def handle_booking_error(request: Request, exc: BookingError):
        logger.log(exc.log_level, '%s on %s: %s', exc.code, request.url.path, exc.message)
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        error = InvalidInput('Validation errors', details={'errors': jsonable_encoder(exc.errors())})
        logger.info('%s on %s: %s', error.code, request.url.path, exc.errors())
        return error.to_response()

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        logger.exception('Database error on %s', request.url.path)
        return JSONResponse(
            status_code=503,
            content={
                'success': False,
                'code': 'DATABASE_UNAVAILABLE',
                'message': 'Database unavailable. Verify DATABASE_URL and database credentials.',
            },
        )
