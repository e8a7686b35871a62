import logging
import time
import uuid

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from pro_account.api.deps import csrf_rejection, get_csrf_service, rate_limited
from pro_account.security.csrf import CsrfService
from pro_account.validation import AccountForm, format_validation_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["account"])


@router.post(
    "/account",
    dependencies=[Depends(rate_limited("Limite de taux dépassée"))],
)
async def submit_account(
    request: Request,
    x_csrf_token: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    csrf: CsrfService = Depends(get_csrf_service),
):
    """Final step of the wizard: the whole registration form, documents included."""
    rejection = csrf_rejection(csrf, x_csrf_token, x_session_id)
    if rejection is not None:
        return rejection

    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return JSONResponse(
            {"error": "Données invalides", "message": "Format de données invalide"},
            status_code=400,
        )

    try:
        form = AccountForm.model_validate(body)
    except PydanticValidationError as exc:
        return JSONResponse(
            {"error": "Validation échouée", "message": format_validation_error(exc)},
            status_code=400,
        )

    logger.info(
        "account request accepted naf=%s document_type=%s",
        form.naf_ape or "-",
        form.legal_document.content_type,
    )
    return {
        "success": True,
        "message": "Demande de création de compte reçue",
        "data": {
            "id": str(uuid.uuid4()),
            "timestamp": int(time.time() * 1000),
            "companyName": form.company_name,
            "siret": form.siret,
            "legalDocument": form.legal_document.file_name,
            "signed": True,
        },
    }
