"""Exception types shared across the client."""
from typing import Optional


class GatewayError(Exception):
    """A backend call failed: transport, timeout, non-2xx, open circuit or bad payload."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ValidationFailed(Exception):
    """Client-side validation rejected the input before any remote call."""


class BookingValidationError(ValidationFailed):
    """The booking form is incomplete or the requested change is not allowed."""


class PatientValidationError(ValidationFailed):
    """The patient form is missing consent or a required field."""
