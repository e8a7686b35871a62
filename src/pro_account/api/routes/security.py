import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from pro_account.api.deps import (
    client_identifier,
    get_csrf_service,
    get_rate_limiter,
    rate_limited,
)
from pro_account.security.csrf import CsrfService
from pro_account.security.rate_limit import FixedWindowRateLimiter
from pro_account.settings import Settings
from pro_account.validation import MAX_FILE_SIZE, MAX_STRING_LENGTH

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/security",
    tags=["security"],
    dependencies=[Depends(rate_limited("Limite de taux dépassée"))],
)

NO_STORE = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def _checks(app_settings: Settings, csrf: CsrfService, limiter: FixedWindowRateLimiter) -> list[dict]:
    return [
        {
            "name": "Protection CSRF",
            "status": not csrf.ephemeral_secret,
            "message": "Secret CSRF configuré" if not csrf.ephemeral_secret else "Secret CSRF éphémère",
        },
        {
            "name": "Limitation de taux",
            "status": limiter.max_requests > 0,
            "message": f"{limiter.max_requests} requêtes / {limiter.window_seconds:g}s",
        },
        {
            "name": "API INSEE",
            "status": bool(app_settings.insee_api_key),
            "message": "Clé API configurée" if app_settings.insee_api_key else "Clé API INSEE manquante",
        },
    ]


@router.get("/status")
async def security_status(
    request: Request,
    csrf: CsrfService = Depends(get_csrf_service),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
):
    app_settings: Settings = request.app.state.settings
    checks = _checks(app_settings, csrf, limiter)
    info = limiter.get_info(client_identifier(request))

    return JSONResponse(
        {
            "success": True,
            "status": {
                "overall": all(c["status"] for c in checks),
                "csrf": not csrf.ephemeral_secret,
                "rateLimit": limiter.max_requests > 0,
                "validation": True,
                "headers": True,
                "timestamp": int(time.time() * 1000),
            },
            "config": {
                "rateLimitInfo": {
                    "count": info.count,
                    "remaining": info.remaining,
                    "resetInSeconds": info.reset_in,
                },
                "limits": {
                    "maxFileSize": MAX_FILE_SIZE,
                    "maxStringLength": MAX_STRING_LENGTH,
                    "rateLimitMaxRequests": limiter.max_requests,
                    "rateLimitWindowSeconds": limiter.window_seconds,
                    "csrfTokenTtlSeconds": app_settings.csrf_token_ttl_seconds,
                },
            },
            "message": "Statut de sécurité récupéré avec succès",
        },
        headers=NO_STORE,
    )


@router.post("/status")
async def security_health(
    request: Request,
    csrf: CsrfService = Depends(get_csrf_service),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
):
    try:
        body = await request.json()
    except ValueError:
        body = {}
    full = isinstance(body, dict) and body.get("checkType") == "full"

    checks = _checks(request.app.state.settings, csrf, limiter)
    if full:
        checks.append({"name": "Headers de sécurité", "status": True, "message": "Headers configurés"})

    return JSONResponse(
        {
            "success": True,
            "health": {"overall": all(c["status"] for c in checks), "checks": checks},
            "timestamp": int(time.time() * 1000),
            "message": "Vérification de santé terminée",
        },
        headers=NO_STORE,
    )
