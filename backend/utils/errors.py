# backend/utils/errors.py
from typing import Dict, List, Optional

FieldErrors = Dict[str, List[str]]


# Base class for failures raised by the service layer and rendered as error envelopes
class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str, errors: Optional[FieldErrors] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


# Referenced entity does not exist (or is not visible to the caller)
class NotFound(ServiceError):
    status_code = 404


# Payload or business rule violation, detected before any write
class ValidationFailed(ServiceError):
    status_code = 422

    @classmethod
    def field(cls, name: str, message: str) -> "ValidationFailed":
        return cls("Validation Error", {name: [message]})


# Status change or deletion not allowed from the current state
class IllegalTransition(ServiceError):
    status_code = 400


class Forbidden(ServiceError):
    status_code = 403


# Unexpected error inside a transactional operation (already rolled back)
class InternalFailure(ServiceError):
    status_code = 500
