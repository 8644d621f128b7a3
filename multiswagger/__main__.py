"""
Entry point: ``python -m multiswagger`` or the ``multiswagger`` script.

uvicorn exits with status 1 when the listening port cannot be bound.
"""
import logging

import uvicorn

from multiswagger.api.app import create_app
from multiswagger.core.config import get_settings
from multiswagger.core.structured_logging import configure_logging

logger = logging.getLogger("multiswagger")


def main():
    settings = get_settings()
    configure_logging(settings)

    app = create_app(settings)
    logger.info("Starting server on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
