from enum import StrEnum


class ErrorKind(StrEnum):
    INVALID_INPUT = "invalid_input"
    CONFIGURATION = "configuration"
    AUTH = "auth"
    RATE_LIMITED_UPSTREAM = "rate_limited_upstream"
    RATE_LIMITED_LOCAL = "rate_limited_local"
    UPSTREAM = "upstream"
    TRANSPORT = "transport"
    VALIDATION = "validation"


class ProAccountError(Exception):
    """Base error. `kind` tells callers what went wrong; `message` is user-facing (French)."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(ProAccountError):
    kind = ErrorKind.INVALID_INPUT


class ConfigurationError(ProAccountError):
    kind = ErrorKind.CONFIGURATION


class AuthError(ProAccountError):
    kind = ErrorKind.AUTH


class RateLimitedUpstream(ProAccountError):
    kind = ErrorKind.RATE_LIMITED_UPSTREAM


class RateLimitedLocal(ProAccountError):
    kind = ErrorKind.RATE_LIMITED_LOCAL


class UpstreamError(ProAccountError):
    kind = ErrorKind.UPSTREAM

    def __init__(self, status: int) -> None:
        super().__init__(f"Erreur API INSEE ({status})")
        self.status = status


class TransportError(ProAccountError):
    kind = ErrorKind.TRANSPORT


class ValidationError(ProAccountError):
    kind = ErrorKind.VALIDATION
