#!/usr/bin/env python3
"""
Token Ledger Entry Point

Starts the FastAPI server hosting the configured token ledger.
"""

import sys

from token_ledger.api import run_server
from token_ledger.config import get_config
from token_ledger.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    logger.info(f"Starting token ledger API on {config.api_host}:{config.api_port}")
    logger.info(f"Storage: {config.database_url}")

    try:
        run_server(host=config.api_host, port=config.api_port, log_level=config.log_level)
    except KeyboardInterrupt:
        logger.info("Shutting down token ledger")
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)
