import logging

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from pro_account.api.deps import csrf_rejection, get_csrf_service, rate_limited
from pro_account.security.csrf import CsrfService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/csrf", tags=["csrf"])


@router.get(
    "/validate",
    dependencies=[Depends(rate_limited("Limite de taux dépassée pour la génération CSRF"))],
)
async def issue_token(csrf: CsrfService = Depends(get_csrf_service)):
    try:
        token, session_id = csrf.issue()
    except Exception:
        logger.exception("CSRF token generation failed")
        return JSONResponse(
            {"error": "Erreur serveur", "message": "Erreur interne lors de la génération CSRF"},
            status_code=500,
        )

    return {
        "success": True,
        "token": token,
        "sessionId": session_id,
        "message": "Token CSRF généré avec succès",
    }


@router.post(
    "/validate",
    dependencies=[Depends(rate_limited("Limite de taux dépassée pour la validation CSRF"))],
)
async def validate_token(
    x_csrf_token: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    csrf: CsrfService = Depends(get_csrf_service),
):
    try:
        rejection = csrf_rejection(csrf, x_csrf_token, x_session_id)
    except Exception:
        logger.exception("CSRF validation failed")
        return JSONResponse(
            {"error": "Erreur serveur", "message": "Erreur interne lors de la validation CSRF"},
            status_code=500,
        )

    if rejection is not None:
        return rejection
    return {"success": True, "message": "Token CSRF valide", "sessionId": x_session_id}
