"""
staybook.services.errors

Service-layer exceptions.

Each subclass carries the HTTP status the API layer reports for it, so services stay
independent of FastAPI while routers stay free of try/except boilerplate.
"""

from __future__ import annotations


class ServiceError(Exception):
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(ServiceError):
    status_code = 400


class PaymentFailed(ServiceError):
    status_code = 402


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


class Unauthorized(ServiceError):
    status_code = 401
