import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from pro_account.api.deps import get_insee_client, rate_limited
from pro_account.clients.insee import InseeClient
from pro_account.errors import InvalidInput, ProAccountError
from pro_account.validation import entreprise_to_form_fields, validate_search_query, validate_siren

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/insee",
    tags=["insee"],
    dependencies=[Depends(rate_limited("Limite de taux dépassée pour la recherche d'entreprise"))],
)


def _client_error(exc: ProAccountError) -> JSONResponse:
    status = 400 if isinstance(exc, InvalidInput) else 500
    logger.warning("INSEE lookup failed kind=%s", exc.kind)
    return JSONResponse({"error": exc.message}, status_code=status)


@router.get("/search")
async def search(
    name: str | None = Query(default=None),
    postal_code: str | None = Query(default=None, alias="postalCode"),
    client: InseeClient = Depends(get_insee_client),
):
    try:
        name, postal_code = validate_search_query(name, postal_code)
    except InvalidInput as exc:
        return JSONResponse({"error": exc.message}, status_code=400)

    try:
        results = await client.search_by_name_and_postal(name, postal_code)
    except ProAccountError as exc:
        return _client_error(exc)
    except Exception:
        logger.exception("unexpected error during company search")
        return JSONResponse({"error": "Erreur lors de la recherche d'entreprise"}, status_code=500)

    return {"results": [r.model_dump(by_alias=True) for r in results]}


@router.get("/siren/{siren}")
async def by_siren(siren: str, client: InseeClient = Depends(get_insee_client)):
    try:
        validate_siren(siren)
    except InvalidInput as exc:
        return JSONResponse({"error": exc.message}, status_code=400)

    try:
        result = await client.search_by_siren(siren)
    except ProAccountError as exc:
        return _client_error(exc)
    except Exception:
        logger.exception("unexpected error during SIREN lookup")
        return JSONResponse({"error": "Erreur lors de la recherche"}, status_code=500)

    if result is None:
        return JSONResponse({"error": "Aucune entreprise trouvée pour ce SIREN"}, status_code=404)
    return {"result": result.model_dump(by_alias=True), "formFields": entreprise_to_form_fields(result)}
