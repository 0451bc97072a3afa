# app/errors.py
from typing import Any, Dict, Optional

from fastapi import status


class RegistrationError(Exception):
    """Base class for errors raised by the registration and catalog layers.

    ``detail`` is always sent to the client. ``diagnostic`` holds raw store
    messages and is only sent outside production.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, diagnostic: Optional[str] = None, **detail: Any):
        super().__init__(message)
        self.message = message
        self.diagnostic = diagnostic
        self.detail: Dict[str, Any] = detail


class ValidationError(RegistrationError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(RegistrationError):
    status_code = status.HTTP_404_NOT_FOUND


class StoreUnavailable(RegistrationError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpdateFailed(RegistrationError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class RegistrationLogError(RegistrationError):
    """The local registration log could not be read or written."""
