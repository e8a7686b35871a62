import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pro_account.api.routes import account, company, csrf, insee, security
from pro_account.clients.insee import InseeClient
from pro_account.errors import RateLimitedLocal
from pro_account.security.csrf import CsrfService
from pro_account.security.rate_limit import FixedWindowRateLimiter
from pro_account.settings import Settings, settings

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}


def create_app(
    app_settings: Settings = settings,
    *,
    insee_client: InseeClient | None = None,
    csrf_service: CsrfService | None = None,
    rate_limiter: FixedWindowRateLimiter | None = None,
) -> FastAPI:
    owns_client = insee_client is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("pro-account API starting")
        yield
        if owns_client:
            await app.state.insee_client.aclose()

    app = FastAPI(title="pro-account", version="0.1.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.insee_client = insee_client or InseeClient(app_settings=app_settings)
    app.state.csrf_service = csrf_service or CsrfService(app_settings=app_settings)
    app.state.rate_limiter = rate_limiter or FixedWindowRateLimiter(app_settings=app_settings)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        try:
            response = await call_next(request)
        except Exception:
            # ServerErrorMiddleware sits outside this middleware.
            logger.exception("unhandled error path=%s", request.url.path)
            response = JSONResponse(
                {"error": "Erreur serveur", "message": "Erreur interne du serveur"},
                status_code=500,
            )
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(RateLimitedLocal)
    async def rate_limited_handler(request: Request, exc: RateLimitedLocal) -> JSONResponse:
        return JSONResponse({"error": "Trop de requêtes", "message": exc.message}, status_code=429)

    app.include_router(insee.router)
    app.include_router(csrf.router)
    app.include_router(company.router)
    app.include_router(account.router)
    app.include_router(security.router)
    return app
