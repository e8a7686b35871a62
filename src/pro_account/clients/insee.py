import logging
import re

import httpx
from pydantic import ValidationError as PydanticValidationError

from pro_account.errors import (
    AuthError,
    ConfigurationError,
    InvalidInput,
    RateLimitedUpstream,
    TransportError,
    UpstreamError,
)
from pro_account.models import (
    EntrepriseAdresse,
    EntrepriseSearchResult,
    InseeEtablissement,
    InseeSearchResponse,
)
from pro_account.settings import Settings, settings

logger = logging.getLogger(__name__)

POSTAL_CODE_RE = re.compile(r"^\d{5}$")
SIREN_RE = re.compile(r"^\d{9}$")
FALLBACK_NAME = "Entreprise sans nom"


def tva_intracom_from_siren(siren: str) -> str:
    # French VAT key formula. Derived from the SIREN only; the registry does not
    # say whether the company is actually VAT-registered.
    if not SIREN_RE.fullmatch(siren):
        raise ValueError(f"not a SIREN: {siren!r}")
    key = (12 + 3 * (int(siren) % 97)) % 97
    return f"FR{key:02d}{siren}"


def _collapse(value: str) -> str:
    return " ".join(value.split())


def normalize_insee_etablissement(e: InseeEtablissement) -> EntrepriseSearchResult | None:
    adresse = e.adresse_etablissement
    if not e.siren or not e.siret or adresse is None:
        return None

    unite = e.unite_legale
    voie = _collapse(
        " ".join(
            p
            for p in [
                adresse.numero_voie_etablissement,
                adresse.indice_repetition_etablissement,
                adresse.type_voie_etablissement,
                adresse.libelle_voie_etablissement,
            ]
            if p
        )
    )
    raison_sociale = (
        (unite.denomination_unite_legale if unite else None)
        or e.denomination_usuelle_etablissement
        or (unite.sigle_unite_legale if unite else None)
        or FALLBACK_NAME
    )
    naf_ape = (
        e.activite_principale_etablissement
        or (unite.activite_principale_unite_legale if unite else None)
        or ""
    )

    return EntrepriseSearchResult(
        siren=e.siren,
        siret=e.siret,
        raison_sociale=raison_sociale,
        naf_ape=naf_ape,
        tva_intracom=tva_intracom_from_siren(e.siren),
        adresse=EntrepriseAdresse(
            voie=voie,
            code_postal=adresse.code_postal_etablissement or "",
            ville=adresse.libelle_commune_etablissement or "",
        ),
    )


def normalize_insee_response(resp: InseeSearchResponse) -> list[EntrepriseSearchResult]:
    out: list[EntrepriseSearchResult] = []
    for item in resp.etablissements or []:
        try:
            record = normalize_insee_etablissement(item)
        except (PydanticValidationError, ValueError):
            logger.warning("skipping malformed INSEE record siret=%s", item.siret)
            continue
        if record is not None:
            out.append(record)
    return out


class InseeClient:
    def __init__(
        self,
        *,
        app_settings: Settings = settings,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = app_settings
        self._http = http or httpx.AsyncClient(
            base_url=self._settings.insee_api_base_url,
            timeout=httpx.Timeout(self._settings.http_timeout_seconds),
            headers={"user-agent": "pro-account/0.1"},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "InseeClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _resolve_api_key(self, api_key: str | None) -> str:
        key = api_key or self._settings.insee_api_key
        if not key:
            raise ConfigurationError("Clé API INSEE manquante")
        return key

    async def _get_siret(self, *, params: dict[str, str | int], api_key: str) -> InseeSearchResponse | None:
        """GET /siret. Returns None on 404, which Sirene uses for "no match"."""
        try:
            resp = await self._http.get(
                "/siret",
                params=params,
                headers={"X-INSEE-Api-Key-Integration": api_key, "Accept": "application/json"},
            )
        except httpx.TimeoutException as exc:
            logger.warning("INSEE request timed out")
            raise TransportError("La requête a expiré. Vérifiez votre connexion.") from exc
        except httpx.TransportError as exc:
            logger.warning("INSEE request failed: %s", type(exc).__name__)
            raise TransportError("Impossible de joindre l'API INSEE") from exc

        if resp.status_code == 404:
            return None
        if resp.status_code == 401:
            raise AuthError("Clé API INSEE invalide ou expirée (401)")
        if resp.status_code == 429:
            raise RateLimitedUpstream(
                "Trop de requêtes à l'API INSEE (429). Réessayez dans quelques instants."
            )
        if not resp.is_success:
            logger.warning("INSEE returned status=%s", resp.status_code)
            raise UpstreamError(resp.status_code)

        try:
            return InseeSearchResponse.model_validate(resp.json())
        except ValueError as exc:
            logger.warning("INSEE returned an unreadable body")
            raise UpstreamError(resp.status_code) from exc

    async def search_by_name_and_postal(
        self,
        name: str,
        postal_code: str | None = None,
        api_key: str | None = None,
    ) -> list[EntrepriseSearchResult]:
        if not name or len(name.strip()) < 2:
            raise InvalidInput("Le nom doit contenir au moins 2 caractères")
        if postal_code and not POSTAL_CODE_RE.fullmatch(postal_code):
            raise InvalidInput("Le code postal doit contenir 5 chiffres")
        key = self._resolve_api_key(api_key)

        query = f"denominationUniteLegale:{_collapse(name).upper()}"
        if postal_code:
            query += f" AND codePostalEtablissement:{postal_code}"

        data = await self._get_siret(
            params={"q": query, "nombre": self._settings.insee_max_results},
            api_key=key,
        )
        if data is None:
            return []
        return normalize_insee_response(data)

    async def search_by_siren(
        self,
        siren: str,
        api_key: str | None = None,
    ) -> EntrepriseSearchResult | None:
        if not siren or not SIREN_RE.fullmatch(siren):
            raise InvalidInput("Le SIREN doit contenir 9 chiffres")
        key = self._resolve_api_key(api_key)

        data = await self._get_siret(params={"q": f"siren:{siren}", "nombre": 1}, api_key=key)
        if data is None:
            return None
        results = normalize_insee_response(data)
        return results[0] if results else None
