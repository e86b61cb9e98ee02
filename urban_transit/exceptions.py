"""Domain errors raised by the service layer.

Each error carries the HTTP status it is rendered with by the application
exception handler in ``urban_transit.main``.
"""

from fastapi import status


class TransitError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(TransitError):
    status_code = status.HTTP_404_NOT_FOUND


class TicketNotValid(TransitError):
    status_code = status.HTTP_400_BAD_REQUEST


class DuplicatePass(TransitError):
    status_code = status.HTTP_409_CONFLICT


class RouteUnavailable(TransitError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransition(TransitError):
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(TransitError):
    status_code = status.HTTP_409_CONFLICT


class InvalidRequest(TransitError):
    status_code = status.HTTP_400_BAD_REQUEST


class PricingUnavailable(TransitError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class PermissionDenied(TransitError):
    status_code = status.HTTP_403_FORBIDDEN
