import pytest
from pydantic import ValidationError as PydanticValidationError

from conftest import ACME
from pro_account.clients.insee import normalize_insee_etablissement
from pro_account.errors import InvalidInput, ValidationError
from pro_account.models import InseeEtablissement
from pro_account.validation import (
    AccountForm,
    CompanyData,
    entreprise_to_form_fields,
    format_validation_error,
    sanitize_input,
    validate_csrf_headers,
    validate_search_query,
)

VALID_FORM = {
    "companyName": "ACME CORP",
    "siren": "123456789",
    "siret": "12345678901234",
    "nafApe": "62.01Z",
    "tvaIntracom": "FR32123456789",
    "responsableAchatEmail": "achats@acme.fr",
    "responsableAchatPhone": "01 23 45 67 89",
    "serviceComptaEmail": "compta@acme.fr",
    "serviceComptaPhone": "+33 6 12 34 56 78",
    "address": "1 RUE DE LA PAIX",
    "postalCode": "75001",
    "city": "PARIS",
    "deliveryAddress": "2 AVENUE DU GENERAL LECLERC",
    "deliveryPostalCode": "92100",
    "deliveryCity": "BOULOGNE-BILLANCOURT",
    "legalDocument": {"fileName": "kbis.pdf", "fileSize": 120_000, "contentType": "application/pdf"},
    "signature": "data:image/png;base64,iVBORw0KGgo=",
}


def test_search_query_checks() -> None:
    assert validate_search_query("ACME", "") == ("ACME", None)
    assert validate_search_query("ACME", "75001") == ("ACME", "75001")
    with pytest.raises(InvalidInput, match="requis"):
        validate_search_query(None, None)
    with pytest.raises(InvalidInput, match="2 caractères"):
        validate_search_query("A", None)
    with pytest.raises(InvalidInput, match="code postal"):
        validate_search_query("ACME", "750")


def test_csrf_headers_shape() -> None:
    token = "a" * 32 + ".1700000000." + "b" * 64
    session_id = "123e4567-e89b-12d3-a456-426614174000"
    assert validate_csrf_headers(token, session_id).session_id == session_id

    with pytest.raises(ValidationError, match="Format de token CSRF invalide"):
        validate_csrf_headers("not-a-token", session_id)
    with pytest.raises(ValidationError, match="ID de session invalide"):
        validate_csrf_headers(token, "short")


def test_account_form_accepts_complete_submission() -> None:
    form = AccountForm.model_validate(VALID_FORM)
    assert form.company_name == "ACME CORP"
    assert form.legal_document.content_type == "application/pdf"


@pytest.mark.parametrize(
    "phone",
    ["0123456789", "01.23.45.67.89", "01-23-45-67-89", "+33123456789", "0033 1 23 45 67 89"],
)
def test_account_form_phone_formats(phone: str) -> None:
    AccountForm.model_validate({**VALID_FORM, "responsableAchatPhone": phone})


@pytest.mark.parametrize("phone", ["0023456789", "12345", "+44 1 23 45 67 89", "01 23 45 67"])
def test_account_form_rejects_bad_phone(phone: str) -> None:
    with pytest.raises(PydanticValidationError) as exc_info:
        AccountForm.model_validate({**VALID_FORM, "responsableAchatPhone": phone})
    assert "responsable achat" in format_validation_error(exc_info.value)


def test_account_form_optional_identifiers_may_be_blank() -> None:
    form = AccountForm.model_validate({**VALID_FORM, "siren": "", "nafApe": "", "tvaIntracom": ""})
    assert form.siren == ""


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("siret", "1234"),
        ("tvaIntracom", "FR1234"),
        ("postalCode", "7500A"),
        ("responsableAchatEmail", "not-an-email"),
        ("signature", "iVBORw0KGgoAAAANSUhEUg"),
        ("legalDocument", {"fileName": "kbis.docx", "fileSize": 100, "contentType": "application/msword"}),
        ("legalDocument", {"fileName": "big.pdf", "fileSize": 11 * 1024 * 1024, "contentType": "application/pdf"}),
    ],
)
def test_account_form_rejects_invalid_field(field: str, value: object) -> None:
    with pytest.raises(PydanticValidationError):
        AccountForm.model_validate({**VALID_FORM, field: value})


def test_registry_match_fills_the_form() -> None:
    entreprise = normalize_insee_etablissement(InseeEtablissement.model_validate(ACME))
    assert entreprise is not None

    fields = entreprise_to_form_fields(entreprise)
    form = AccountForm.model_validate({**VALID_FORM, **fields})

    assert form.siren == "123456789"
    assert form.tva_intracom == "FR32123456789"
    assert form.address == "1 RUE DE LA PAIX"


def test_company_data_messages_are_french() -> None:
    with pytest.raises(PydanticValidationError) as exc_info:
        CompanyData.model_validate(
            {
                "siren": "12345",
                "siret": "12345678901234",
                "nafApe": "6201Z",
                "companyName": "ACME",
                "address": "1 RUE DE LA PAIX",
                "postalCode": "75001",
                "city": "PARIS",
            }
        )
    message = format_validation_error(exc_info.value)
    assert message.startswith("Erreur de validation: ")
    assert "Le SIREN doit contenir 9 chiffres" in message
    assert "Format NAF/APE invalide" in message


def test_company_data_accepts_accented_names() -> None:
    data = CompanyData.model_validate(
        {
            "siren": "123456789",
            "siret": "12345678901234",
            "nafApe": "62.01Z",
            "companyName": "Société Générale d'Équipement",
            "address": "1 RUE DE LA PAIX",
            "postalCode": "75001",
            "city": "Saint-Étienne",
        }
    )
    assert data.tva_intracom is None


def test_sanitize_input_strips_markup() -> None:
    assert sanitize_input("  <b>ACME</b> ") == "bACME/b"
    assert sanitize_input("javascript:alert(1)") == "alert(1)"
    assert sanitize_input("x onclick=y") == "x y"
    assert len(sanitize_input("a" * 2000)) == 1000
