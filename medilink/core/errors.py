"""
Domain errors raised by the services and turned into JSON responses by the app.
"""
from fastapi import status


class MedilinkError(Exception):
    """Base class for rule violations reported back to the caller."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(MedilinkError):
    status_code = status.HTTP_400_BAD_REQUEST


class StateConflict(MedilinkError):
    """The order or bid is in a status that does not allow the operation."""
    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDenied(MedilinkError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(MedilinkError):
    status_code = status.HTTP_404_NOT_FOUND
