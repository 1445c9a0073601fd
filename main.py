"""CareLens — Entry Point

Starts the FastAPI gateway: skin analysis, first-aid triage and Q&A,
hospital finder, text-to-speech and SOS info. Stateless across requests.
"""
import logging
import structlog

from carelens.core.config import get_config

config = get_config()

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(config.log_level.upper())
    ),
)

import uvicorn


def main():
    uvicorn.run(
        "carelens.gateway:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
