"""Coordinator — entry point."""
import logging

import uvicorn

from cuesync.config import SERVER_HOST, SERVER_PORT, LOG_LEVEL
from cuesync.web.server import create_app

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("cuesync")


def main():
    app = create_app()
    logger.info("Starting coordinator on %s:%s", SERVER_HOST, SERVER_PORT)
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
