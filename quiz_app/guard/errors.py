# quiz_app/guard/errors.py
from __future__ import annotations
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    RATE_LIMITED_LOCAL = "rate_limited_local"
    ALREADY_REGISTERED = "already_registered"
    RATE_LIMITED = "rate_limited"
    WEAK_PASSWORD = "weak_password"
    INVALID_EMAIL = "invalid_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    NETWORK = "network"
    SERVER = "server"
    GENERIC = "generic"
    RECORD_INSERT = "record_insert"
    UNEXPECTED = "unexpected"


MESSAGES = {
    ErrorKind.ALREADY_REGISTERED: "Email already exists. Please use a different email or login.",
    ErrorKind.RATE_LIMITED: "Too many signup attempts. Please wait 15 minutes and try again.",
    ErrorKind.WEAK_PASSWORD: "Password is too weak. Please use a stronger password.",
    ErrorKind.INVALID_EMAIL: "Please enter a valid email address.",
    ErrorKind.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorKind.NETWORK: "Network connection failed. Please check your internet and try again.",
    ErrorKind.SERVER: "Authentication service is temporarily down. Please try again in a few minutes.",
    ErrorKind.GENERIC: "Unable to create account at this time. Please try again later.",
    ErrorKind.RECORD_INSERT: "Account creation failed. Please try again.",
    ErrorKind.UNEXPECTED: "An unexpected error occurred. Please try again.",
}

RATE_LIMIT_MESSAGES = {
    "EMAIL_RATE_LIMIT": "Too many signup attempts for this email. Please try again in 15 minutes.",
    "IP_RATE_LIMIT": "Too many signup attempts from your network. Please try again in 15 minutes.",
}

LOGIN_MESSAGES = {
    ErrorKind.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorKind.RATE_LIMITED: "Too many sign-in attempts. Please wait a few minutes and try again.",
    ErrorKind.GENERIC: "Unable to sign in at this time. Please try again later.",
}

SUCCESS_MESSAGE = "Account created successfully! Please check your email for verification."

HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.RATE_LIMITED_LOCAL: 429,
    ErrorKind.ALREADY_REGISTERED: 409,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.WEAK_PASSWORD: 400,
    ErrorKind.INVALID_EMAIL: 400,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.NETWORK: 502,
    ErrorKind.SERVER: 503,
    ErrorKind.GENERIC: 502,
    ErrorKind.RECORD_INSERT: 502,
    ErrorKind.UNEXPECTED: 500,
}


def message_for(kind: ErrorKind) -> str:
    return MESSAGES.get(kind, MESSAGES[ErrorKind.GENERIC])


def login_message_for(kind: ErrorKind) -> str:
    if kind in LOGIN_MESSAGES:
        return LOGIN_MESSAGES[kind]
    if kind in (ErrorKind.NETWORK, ErrorKind.SERVER, ErrorKind.UNEXPECTED):
        return MESSAGES[kind]
    return LOGIN_MESSAGES[ErrorKind.GENERIC]


class ServiceError(Exception):
    """Base for failures reported by an external binding."""

    def __init__(self, kind: ErrorKind, detail: str = "", *, status_code: Optional[int] = None):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail
        self.status_code = status_code


class IdentityServiceError(ServiceError):
    pass


class RecordStoreError(ServiceError):
    def __init__(self, detail: str = "", *, status_code: Optional[int] = None):
        super().__init__(ErrorKind.GENERIC, detail, status_code=status_code)


class FormRejected(Exception):
    """Carries a user-facing failure out of a route."""

    def __init__(self, kind: ErrorKind, message: str, violations=None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.violations = list(violations or [])

    @property
    def status_code(self) -> int:
        return HTTP_STATUS.get(self.kind, 500)
