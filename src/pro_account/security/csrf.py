import hashlib
import hmac
import logging
import re
import secrets
import time
import uuid
from collections.abc import Callable

from pro_account.errors import ValidationError
from pro_account.settings import Settings, settings

logger = logging.getLogger(__name__)

NONCE_BYTES = 16
NONCE_RE = re.compile(r"^[a-f0-9]{32}$")


class CsrfService:
    """Stateless anti-forgery tokens.

    A token is ``<nonce>.<issued_at>.<signature>`` where the signature is
    HMAC-SHA256 over the dot-joined nonce, session id and issue time. Nothing is stored
    server-side: verification recomputes the signature and checks the age.
    Tokens stay valid until expiry and may be verified any number of times.
    """

    def __init__(
        self,
        *,
        app_settings: Settings = settings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        secret = app_settings.csrf_secret
        if not secret:
            logger.warning("csrf_secret is not configured; using a random per-process secret")
            secret = secrets.token_hex(32)
        self.ephemeral_secret = not app_settings.csrf_secret
        self._secret = secret.encode("utf-8")
        self._ttl = app_settings.csrf_token_ttl_seconds
        self._clock = clock

    def generate_token(self) -> str:
        return secrets.token_hex(NONCE_BYTES)

    def issue_session(self) -> str:
        return str(uuid.uuid4())

    def _signature(self, nonce: str, session_id: str, issued_at: int) -> str:
        msg = ".".join((nonce, session_id, str(issued_at))).encode("utf-8")
        return hmac.new(self._secret, msg, hashlib.sha256).hexdigest()

    def sign(self, session_id: str) -> str:
        nonce = self.generate_token()
        issued_at = int(self._clock())
        return f"{nonce}.{issued_at}.{self._signature(nonce, session_id, issued_at)}"

    def issue(self) -> tuple[str, str]:
        session_id = self.issue_session()
        return self.sign(session_id), session_id

    def verify_token(self, token: str, session_id: str) -> bool:
        if not token or not session_id:
            raise ValidationError("Token CSRF ou ID de session manquant")

        parts = token.split(".")
        if len(parts) != 3:
            return False
        nonce, issued_raw, signature = parts
        if not NONCE_RE.fullmatch(nonce):
            return False
        if not (issued_raw.isascii() and issued_raw.isdigit()):
            return False
        issued_at = int(issued_raw)

        expected = self._signature(nonce, session_id, issued_at)
        if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
            return False

        age = self._clock() - issued_at
        # Expired and future-dated tokens are rejected like forged ones.
        return 0 <= age < self._ttl
