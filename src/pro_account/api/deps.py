import logging
from collections.abc import Callable

from fastapi import Request
from fastapi.responses import JSONResponse

from pro_account.clients.insee import InseeClient
from pro_account.errors import RateLimitedLocal, ValidationError
from pro_account.security.csrf import CsrfService
from pro_account.security.rate_limit import FixedWindowRateLimiter
from pro_account.validation import validate_csrf_headers

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def get_insee_client(request: Request) -> InseeClient:
    return request.app.state.insee_client


def get_csrf_service(request: Request) -> CsrfService:
    return request.app.state.csrf_service


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter


def client_identifier(request: Request) -> str:
    # Clients without a forwarded-for header all share the "unknown" bucket.
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    return first or UNKNOWN_CLIENT


def rate_limited(message: str) -> Callable[[Request], None]:
    """Dependency factory: raises RateLimitedLocal once the caller's window is full."""

    def _check(request: Request) -> None:
        identifier = client_identifier(request)
        if not get_rate_limiter(request).is_allowed(identifier):
            logger.warning("rate limit hit path=%s", request.url.path)
            raise RateLimitedLocal(message)

    return _check


def csrf_rejection(csrf: CsrfService, token: str | None, session_id: str | None) -> JSONResponse | None:
    """Returns the error response for a bad token/session pair, or None if it verifies."""
    if not token or not session_id:
        return JSONResponse(
            {"error": "Token manquant", "message": "Token CSRF ou ID de session manquant"},
            status_code=400,
        )

    try:
        validate_csrf_headers(token, session_id)
    except ValidationError as exc:
        return JSONResponse({"error": "Format invalide", "message": exc.message}, status_code=400)

    if not csrf.verify_token(token, session_id):
        return JSONResponse(
            {"error": "Token invalide", "message": "Token CSRF invalide ou expiré"},
            status_code=403,
        )
    return None
