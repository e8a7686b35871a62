import httpx
import pytest
from fastapi.testclient import TestClient

from pro_account.api.app import create_app
from pro_account.clients.insee import InseeClient
from pro_account.security.csrf import CsrfService
from pro_account.security.rate_limit import FixedWindowRateLimiter
from pro_account.settings import Settings

ACME = {
    "siren": "123456789",
    "siret": "12345678901234",
    "activitePrincipaleEtablissement": "62.01Z",
    "adresseEtablissement": {
        "numeroVoieEtablissement": "1",
        "typeVoieEtablissement": "RUE",
        "libelleVoieEtablissement": "DE LA PAIX",
        "codePostalEtablissement": "75001",
        "libelleCommuneEtablissement": "PARIS",
        "codeCommuneEtablissement": "75101",
    },
    "uniteLegale": {
        "denominationUniteLegale": "ACME CORP",
        "categorieJuridiqueUniteLegale": "5710",
    },
}


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeInsee:
    """httpx.MockTransport handler standing in for the Sirene API."""

    def __init__(self) -> None:
        self.status = 200
        self.payload: dict = {"header": {"statut": 200, "message": "OK"}, "etablissements": []}
        self.exc: Exception | None = None
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status, json=self.payload)


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        _env_file=None,
        insee_api_base_url="https://insee.test/api-sirene/3.11",
        insee_api_key="test-key",
        csrf_secret="unit-test-secret",
        csrf_token_ttl_seconds=1800,
        rate_limit_window_seconds=60,
        rate_limit_max_requests=5,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream() -> FakeInsee:
    return FakeInsee()


@pytest.fixture
def insee_client(app_settings: Settings, upstream: FakeInsee) -> InseeClient:
    http = httpx.AsyncClient(
        base_url=app_settings.insee_api_base_url,
        transport=httpx.MockTransport(upstream),
    )
    return InseeClient(app_settings=app_settings, http=http)


@pytest.fixture
def csrf_service(app_settings: Settings, clock: FakeClock) -> CsrfService:
    return CsrfService(app_settings=app_settings, clock=clock)


@pytest.fixture
def client(
    app_settings: Settings,
    insee_client: InseeClient,
    csrf_service: CsrfService,
    clock: FakeClock,
) -> TestClient:
    app = create_app(
        app_settings,
        insee_client=insee_client,
        csrf_service=csrf_service,
        rate_limiter=FixedWindowRateLimiter(app_settings=app_settings, clock=clock),
    )
    return TestClient(app)
