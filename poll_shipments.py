#!/usr/bin/env python3
"""
ShipStation Shipment Poll Runner

Runs one shipment poll outside the HTTP service, for backfills and for
checking credentials. Prints the hub response the endpoint would return.

Usage:
    python poll_shipments.py --since 2014-11-29T00:38:23Z
    python poll_shipments.py --since 2014-11-29T00:38:23Z --page 3
    python poll_shipments.py --since 2014-11-29T00:38:23Z --all-pages
"""

import argparse
import json
import logging
import sys

from shipstation_endpoint.config.loader import get_fallback_credentials, load_config
from shipstation_endpoint.jobs.shipment_poll import cursor_to_parameters, run_shipment_poll
from shipstation_endpoint.models import HubParameters

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stderr)]
)

logger = logging.getLogger(__name__)


def main():
    """CLI entry point for the poll runner."""
    parser = argparse.ArgumentParser(description="ShipStation Shipment Poll Runner")
    parser.add_argument('--since', required=True, help='Watermark (ISO 8601)')
    parser.add_argument('--page', type=int, default=1, help='Page to fetch')
    parser.add_argument('--all-pages', action='store_true', help='Keep fetching until the last page')
    parser.add_argument('--config', default='config/app.yaml', help='Configuration file path')
    parser.add_argument('--log-level', default='INFO', help='Logging level')

    args = parser.parse_args()

    logging.getLogger().setLevel(getattr(logging, args.log_level.upper()))
    load_config(args.config)

    parameters = HubParameters(since=args.since, page=args.page, **get_fallback_credentials())
    shipments = []

    try:
        while True:
            result = run_shipment_poll(parameters)
            shipments.extend(update.model_dump(mode="json", exclude_none=True) for update in result.updates)
            if not (args.all_pages and result.more_pages):
                break
            parameters = parameters.model_copy(update={"page": result.next_cursor.page})
    except Exception as e:
        logger.error(f"Shipment poll failed: {e}", exc_info=True)
        sys.exit(1)

    print(json.dumps(
        {"shipments": shipments, "parameters": cursor_to_parameters(result.next_cursor)},
        indent=2,
    ))


if __name__ == "__main__":
    main()
