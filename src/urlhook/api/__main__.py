"""Run the urlhook API server.

    python -m urlhook.api
    URLHOOK_API_PORT=9000 urlhook-api
"""

import uvicorn

from urlhook.config import Settings


def main() -> None:
    settings = Settings()
    uvicorn.run(
        "urlhook.api:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
