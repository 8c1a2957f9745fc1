"""
Run the drone API: ``python -m manager_drone``.
"""

from __future__ import annotations

import uvicorn

from .api import create_app
from .config import configure, load_env
from .logging import configure_logging


def main() -> None:
    load_env()
    settings = configure()
    logger = configure_logging(settings.logging)
    logger.info("Starting manager-drone", host=settings.server.host, port=settings.server.port)

    app = create_app(settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port, log_level=settings.logging.level.lower())


if __name__ == "__main__":
    main()
