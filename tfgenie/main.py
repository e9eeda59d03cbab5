"""Application entry point for the TF Genie API server."""

import uvicorn
from dotenv import load_dotenv

from tfgenie.utils.config import load_config
from tfgenie.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    load_dotenv()
    config = load_config()
    setup_logging(config.log_level, config.sql_echo)

    # The app reads its configuration at import time, after .env is loaded.
    from tfgenie.api.app import app

    uvicorn.run(app, host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()
