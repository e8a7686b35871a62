from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PRO_ACCOUNT_", env_file=".env", extra="ignore")

    insee_api_base_url: str = "https://api.insee.fr/api-sirene/3.11"
    insee_api_key: str | None = None
    insee_max_results: int = 20
    http_timeout_seconds: float = 10.0

    # If unset, a random secret is generated per process and tokens do not
    # survive a restart.
    csrf_secret: str | None = None
    csrf_token_ttl_seconds: int = 30 * 60

    rate_limit_window_seconds: float = 60.0
    rate_limit_max_requests: int = 10
    rate_limit_max_identifiers: int = 10_000

    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8000


settings = Settings()
