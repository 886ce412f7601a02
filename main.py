#!/usr/bin/env python3
"""
ShipStation Endpoint

HTTP service translating hub shipments to and from ShipStation.
"""

import argparse
import logging
import sys

import structlog
import uvicorn

from shipstation_endpoint.config.loader import cfg, load_config, validate_config


# Configure structured logging
def setup_logging():
    """Setup structured logging based on configuration."""
    log_level = cfg("global.log_level", "INFO")
    log_format = cfg("global.log_format", "json")

    if log_format == "json":
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=[
                    structlog.stdlib.add_logger_name,
                    structlog.stdlib.add_log_level,
                    structlog.processors.TimeStamper(fmt="iso"),
                    structlog.processors.format_exc_info,
                ],
            )
        )
        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            handlers=[handler]
        )
    else:
        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[logging.StreamHandler(sys.stdout)]
        )

logger = logging.getLogger(__name__)


def main():
    """Main entrypoint for the ShipStation endpoint."""
    parser = argparse.ArgumentParser(description="ShipStation Endpoint")
    parser.add_argument("--config", default="config/app.yaml", help="Configuration file path")
    parser.add_argument("--host", help="Interface to bind (default from config)")
    parser.add_argument("--port", type=int, help="Port to listen on (default from config)")
    parser.add_argument("--validate-config", action="store_true", help="Validate configuration and exit")

    args = parser.parse_args()

    load_config(args.config)

    # Setup logging once configuration is known
    setup_logging()
    logger.info("Starting ShipStation Endpoint")

    try:
        validate_config()
    except ValueError as e:
        logger.error(str(e))
        return 1

    if args.validate_config:
        logger.info("Configuration is valid")
        return 0

    host = args.host or cfg("server.host", "0.0.0.0")
    port = args.port or int(cfg("server.port", 8000))

    logger.info(f"Listening on {host}:{port}")
    uvicorn.run("shipstation_endpoint.server:app", host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
