import logging
import time
import uuid

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from pro_account.api.deps import csrf_rejection, get_csrf_service, rate_limited
from pro_account.security.csrf import CsrfService
from pro_account.validation import CompanyData, format_validation_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/secure", tags=["company"])


@router.post(
    "/company",
    dependencies=[Depends(rate_limited("Limite de taux dépassée"))],
)
async def submit_company(
    request: Request,
    x_csrf_token: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    csrf: CsrfService = Depends(get_csrf_service),
):
    """Validate the company block of the registration form. Nothing is stored."""
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
        company = CompanyData.model_validate(body).sanitized()
    except PydanticValidationError as exc:
        return JSONResponse(
            {"error": "Validation échouée", "message": format_validation_error(exc)},
            status_code=400,
        )

    logger.info("company data accepted naf=%s postal_code=%s", company.naf_ape, company.postal_code)
    return {
        "success": True,
        "message": "Données d'entreprise validées avec succès",
        "data": {
            "id": str(uuid.uuid4()),
            "timestamp": int(time.time() * 1000),
            "companyName": company.company_name,
            "address": company.address,
            "postalCode": company.postal_code,
            "city": company.city,
            "nafApe": company.naf_ape,
        },
    }
