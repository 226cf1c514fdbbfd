"""Entrypoint: serve the plan chat API with uvicorn."""

import uvicorn

from plan_chat.api.app import create_app
from plan_chat.config.settings import Settings


def main() -> None:
    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
