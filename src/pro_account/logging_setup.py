import logging
import sys

from pro_account.settings import Settings, settings

_INITIALIZED: bool = False


def init_logging(level: str | None = None, *, app_settings: Settings = settings) -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return

    log_level = getattr(logging, (level or app_settings.log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root_logger.addHandler(handler)

    # httpx logs full request URLs at INFO, query strings included.
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    _INITIALIZED = True
