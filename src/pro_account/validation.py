import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from pro_account.errors import InvalidInput, ValidationError
from pro_account.models import EntrepriseSearchResult

MAX_STRING_LENGTH = 1000
MAX_FILE_SIZE = 10 * 1024 * 1024
ALLOWED_FILE_TYPES = ("application/pdf", "image/png", "image/jpeg")

POSTAL_CODE_RE = re.compile(r"^\d{5}$")
SIREN_RE = re.compile(r"^\d{9}$")
SIRET_RE = re.compile(r"^\d{14}$")
NAF_RE = re.compile(r"^\d{2}\.\d{2}[A-Z]$")
TVA_FR_RE = re.compile(r"^FR\d{11}$")
TVA_EU_RE = re.compile(r"^[A-Z]{2}\d{2}[0-9A-Z]{8,12}$")
PHONE_FR_RE = re.compile(r"^(?:(?:\+|00)33|0)\s*[1-9](?:[\s.-]*\d{2}){4}$")
CSRF_TOKEN_RE = re.compile(r"^[a-f0-9]{32}\.\d{1,12}\.[a-f0-9]{64}$")
COMPANY_NAME_RE = re.compile(r"^[\w\s\-'&.,()/]+$")
CITY_RE = re.compile(r"^[^\W\d_][\w\s\-'.,()]*$")


def _fail(code: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(code, message)


def _match(value: str, pattern: re.Pattern[str], code: str, message: str) -> str:
    if not pattern.fullmatch(value):
        raise _fail(code, message)
    return value


def format_validation_error(exc: PydanticValidationError) -> str:
    return "Erreur de validation: " + ", ".join(e["msg"] for e in exc.errors())


def sanitize_input(value: str) -> str:
    value = value.strip().replace("<", "").replace(">", "")
    value = re.sub(r"javascript:", "", value, flags=re.IGNORECASE)
    value = re.sub(r"on\w+=", "", value, flags=re.IGNORECASE)
    return value[:MAX_STRING_LENGTH]


def validate_search_query(name: str | None, postal_code: str | None) -> tuple[str, str | None]:
    """Check company-search parameters; returns (name, postal_code or None)."""
    if not name:
        raise InvalidInput("Le nom de l'entreprise est requis")
    if len(name.strip()) < 2:
        raise InvalidInput("Le nom doit contenir au moins 2 caractères")
    if postal_code and not POSTAL_CODE_RE.fullmatch(postal_code):
        raise InvalidInput("Le code postal doit contenir 5 chiffres")
    return name, postal_code or None


def validate_siren(siren: str) -> str:
    if not SIREN_RE.fullmatch(siren):
        raise InvalidInput("Le SIREN doit contenir 9 chiffres")
    return siren


class CsrfHeaders(BaseModel):
    token: str
    session_id: str

    @field_validator("token")
    @classmethod
    def _token_shape(cls, v: str) -> str:
        return _match(v, CSRF_TOKEN_RE, "csrf_token", "Format de token CSRF invalide")

    @field_validator("session_id")
    @classmethod
    def _session_shape(cls, v: str) -> str:
        if not 32 <= len(v) <= 128:
            raise _fail("session_id", "ID de session invalide")
        return v


def validate_csrf_headers(token: str, session_id: str) -> CsrfHeaders:
    try:
        return CsrfHeaders(token=token, session_id=session_id)
    except PydanticValidationError as exc:
        raise ValidationError(format_validation_error(exc)) from exc


class _FormModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class CompanyData(_FormModel):
    """Company block accepted by the secure submission endpoint."""

    siren: str
    siret: str
    naf_ape: str
    tva_intracom: str | None = None
    company_name: str
    address: str
    postal_code: str
    city: str

    @field_validator("siren")
    @classmethod
    def _siren(cls, v: str) -> str:
        return _match(v, SIREN_RE, "siren", "Le SIREN doit contenir 9 chiffres")

    @field_validator("siret")
    @classmethod
    def _siret(cls, v: str) -> str:
        return _match(v, SIRET_RE, "siret", "Le SIRET doit contenir 14 chiffres")

    @field_validator("naf_ape")
    @classmethod
    def _naf(cls, v: str) -> str:
        return _match(v, NAF_RE, "naf_ape", "Format NAF/APE invalide")

    @field_validator("tva_intracom")
    @classmethod
    def _tva(cls, v: str | None) -> str | None:
        if not v:
            return None
        return _match(v, TVA_EU_RE, "tva_intracom", "Format TVA intracommunautaire invalide")

    @field_validator("company_name")
    @classmethod
    def _company_name(cls, v: str) -> str:
        if len(v) < 2:
            raise _fail("company_name", "Le nom de l'entreprise doit contenir au moins 2 caractères")
        if len(v) > MAX_STRING_LENGTH:
            raise _fail("company_name", "Nom d'entreprise trop long")
        return _match(v, COMPANY_NAME_RE, "company_name", "Caractères non autorisés dans le nom d'entreprise")

    @field_validator("address")
    @classmethod
    def _address(cls, v: str) -> str:
        if len(v) < 5:
            raise _fail("address", "L'adresse doit contenir au moins 5 caractères")
        if len(v) > MAX_STRING_LENGTH:
            raise _fail("address", "Adresse trop longue")
        return v

    @field_validator("postal_code")
    @classmethod
    def _postal_code(cls, v: str) -> str:
        return _match(v, POSTAL_CODE_RE, "postal_code", "Le code postal doit contenir 5 chiffres")

    @field_validator("city")
    @classmethod
    def _city(cls, v: str) -> str:
        if len(v) < 2:
            raise _fail("city", "Le nom de la ville doit contenir au moins 2 caractères")
        if len(v) > 100:
            raise _fail("city", "Nom de ville trop long")
        return _match(v, CITY_RE, "city", "Caractères non autorisés dans le nom de ville")

    def sanitized(self) -> "CompanyData":
        return self.model_copy(
            update={
                name: sanitize_input(value)
                for name, value in self.model_dump().items()
                if isinstance(value, str)
            }
        )


class LegalDocument(_FormModel):
    file_name: str = Field(min_length=1, max_length=255)
    file_size: int
    content_type: str

    @field_validator("file_size")
    @classmethod
    def _size(cls, v: int) -> int:
        if v <= 0:
            raise _fail("file_size", "Le fichier ne peut pas être vide")
        if v > MAX_FILE_SIZE:
            raise _fail("file_size", "Le fichier ne doit pas dépasser 10MB")
        return v

    @field_validator("content_type")
    @classmethod
    def _type(cls, v: str) -> str:
        if v not in ALLOWED_FILE_TYPES:
            raise _fail("content_type", "Format de fichier non supporté (PDF, PNG, JPG uniquement)")
        return v


class AccountForm(_FormModel):
    """Everything the registration wizard submits."""

    company_name: str
    siren: str = ""
    siret: str
    naf_ape: str = ""
    tva_intracom: str = ""

    responsable_achat_email: EmailStr
    responsable_achat_phone: str
    service_compta_email: EmailStr
    service_compta_phone: str

    address: str
    postal_code: str
    city: str
    delivery_address: str
    delivery_postal_code: str
    delivery_city: str

    legal_document: LegalDocument
    signature: str

    @field_validator("company_name")
    @classmethod
    def _company_name(cls, v: str) -> str:
        if len(v) < 2:
            raise _fail("company_name", "Le nom de l'entreprise doit contenir au moins 2 caractères")
        if len(v) > 100:
            raise _fail("company_name", "Le nom de l'entreprise ne peut pas dépasser 100 caractères")
        return v

    @field_validator("siren")
    @classmethod
    def _siren(cls, v: str) -> str:
        if not v:
            return v
        return _match(v, SIREN_RE, "siren", "Le SIREN doit contenir exactement 9 chiffres")

    @field_validator("siret")
    @classmethod
    def _siret(cls, v: str) -> str:
        return _match(v, SIRET_RE, "siret", "Le SIRET doit contenir exactement 14 chiffres")

    @field_validator("tva_intracom")
    @classmethod
    def _tva(cls, v: str) -> str:
        if not v:
            return v
        return _match(
            v, TVA_FR_RE, "tva_intracom", "Le numéro de TVA doit avoir le format FR suivi de 11 chiffres"
        )

    @field_validator("responsable_achat_phone")
    @classmethod
    def _achat_phone(cls, v: str) -> str:
        return _match(
            v, PHONE_FR_RE, "phone", "Le numéro de téléphone du responsable achat n'est pas valide"
        )

    @field_validator("service_compta_phone")
    @classmethod
    def _compta_phone(cls, v: str) -> str:
        return _match(
            v, PHONE_FR_RE, "phone", "Le numéro de téléphone du service comptabilité n'est pas valide"
        )

    @field_validator("address")
    @classmethod
    def _address(cls, v: str) -> str:
        if len(v) < 5:
            raise _fail("address", "L'adresse doit contenir au moins 5 caractères")
        return v

    @field_validator("delivery_address")
    @classmethod
    def _delivery_address(cls, v: str) -> str:
        if len(v) < 5:
            raise _fail("address", "L'adresse de livraison doit contenir au moins 5 caractères")
        return v

    @field_validator("postal_code")
    @classmethod
    def _postal_code(cls, v: str) -> str:
        return _match(v, POSTAL_CODE_RE, "postal_code", "Le code postal doit contenir 5 chiffres")

    @field_validator("delivery_postal_code")
    @classmethod
    def _delivery_postal_code(cls, v: str) -> str:
        return _match(
            v, POSTAL_CODE_RE, "postal_code", "Le code postal de livraison doit contenir 5 chiffres"
        )

    @field_validator("city")
    @classmethod
    def _city(cls, v: str) -> str:
        if len(v) < 2:
            raise _fail("city", "La ville doit contenir au moins 2 caractères")
        return v

    @field_validator("delivery_city")
    @classmethod
    def _delivery_city(cls, v: str) -> str:
        if len(v) < 2:
            raise _fail("city", "La ville de livraison doit contenir au moins 2 caractères")
        return v

    @field_validator("signature")
    @classmethod
    def _signature(cls, v: str) -> str:
        if len(v) < 10:
            raise _fail("signature", "La signature est obligatoire")
        if not v.startswith("data:image"):
            raise _fail("signature", "La signature doit être une image valide")
        return v


def entreprise_to_form_fields(entreprise: EntrepriseSearchResult) -> dict[str, str]:
    """Form fields prefilled when the user picks a registry match."""
    return {
        "companyName": entreprise.raison_sociale,
        "siren": entreprise.siren,
        "siret": entreprise.siret,
        "nafApe": entreprise.naf_ape,
        "tvaIntracom": entreprise.tva_intracom,
        "address": entreprise.adresse.voie,
        "postalCode": entreprise.adresse.code_postal,
        "city": entreprise.adresse.ville,
    }
