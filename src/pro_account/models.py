from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _InseeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class InseeAdresse(_InseeModel):
    complement_adresse_etablissement: str | None = None
    numero_voie_etablissement: str | None = None
    indice_repetition_etablissement: str | None = None
    type_voie_etablissement: str | None = None
    libelle_voie_etablissement: str | None = None
    code_postal_etablissement: str | None = None
    libelle_commune_etablissement: str | None = None
    code_commune_etablissement: str | None = None


class InseeUniteLegale(_InseeModel):
    siren: str | None = None
    statut_diffusion_unite_legale: str | None = None
    denomination_unite_legale: str | None = None
    sigle_unite_legale: str | None = None
    activite_principale_unite_legale: str | None = None
    nomenclature_activite_principale_unite_legale: str | None = None
    categorie_juridique_unite_legale: str | None = None
    tranche_effectifs_unite_legale: str | None = None


class InseeEtablissement(_InseeModel):
    siren: str | None = None
    siret: str | None = None
    date_creation_etablissement: str | None = None
    tranche_effectifs_etablissement: str | None = None
    activite_principale_etablissement: str | None = None
    nomenclature_activite_principale_etablissement: str | None = None
    denomination_usuelle_etablissement: str | None = None

    adresse_etablissement: InseeAdresse | None = None
    unite_legale: InseeUniteLegale | None = None


class InseeHeader(_InseeModel):
    statut: int | None = None
    message: str | None = None
    total: int | None = None
    debut: int | None = None
    nombre: int | None = None


class InseeSearchResponse(_InseeModel):
    header: InseeHeader | None = None
    etablissements: list[InseeEtablissement] | None = None


class EntrepriseAdresse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    voie: str
    code_postal: str
    ville: str


class EntrepriseSearchResult(BaseModel):
    """Normalized company record handed to the registration form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    siren: str = Field(pattern=r"^\d{9}$")
    siret: str = Field(pattern=r"^\d{14}$")
    raison_sociale: str
    naf_ape: str
    tva_intracom: str = Field(pattern=r"^FR\d{11}$")
    adresse: EntrepriseAdresse

    @model_validator(mode="after")
    def _siret_extends_siren(self) -> "EntrepriseSearchResult":
        if not self.siret.startswith(self.siren):
            raise ValueError("siret must start with siren")
        return self
