"""Application entry point for the CBT service."""

from __future__ import annotations

import uvicorn

from cbt_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from cbt_app.core.test_manager import TestManager
from cbt_app.server.api_server import create_api_app
from cbt_app.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging and serve the API until interrupted."""
    logger = configure_logging()
    logger.info("Starting CBT service on %s:%s", DEFAULT_HOST, DEFAULT_PORT)

    app = create_api_app(TestManager())
    uvicorn.run(app, host=DEFAULT_HOST, port=DEFAULT_PORT, log_level="info")


if __name__ == "__main__":
    main()
