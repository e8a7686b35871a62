import uvicorn

from pro_account.api.app import create_app
from pro_account.logging_setup import init_logging
from pro_account.settings import settings


def main() -> None:
    init_logging()
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
