#!/usr/bin/env python3
"""
Connectivity check for the Workbook API.

Usage:
    python scripts/check_connectivity.py
    python scripts/check_connectivity.py --env dev --verbose

Required (.env) for the selected environment:
  WORKBOOK_API_KEY_DEV / WORKBOOK_API_KEY_PROD
  WORKBOOK_BASE_URL_DEV / WORKBOOK_BASE_URL_PROD

Exit codes:
  0: API reachable and credentials accepted
  1: configuration missing or API unhealthy
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root))

from config import Config  # noqa: E402  (loads .env)
from workbook import ConfigurationError, WorkbookClient  # noqa: E402
from workbook.logging_setup import setup_logging  # noqa: E402


async def run_check(environment: str) -> int:
    try:
        client = WorkbookClient.from_environment(environment)
    except ConfigurationError as e:
        print(f"✗ {e}")
        return 1

    report = await client.health_check()
    print(json.dumps(report, indent=2, default=str))

    if report["status"] == "healthy":
        print(f"✓ Workbook API reachable at {report['config']['host']}")
        return 0
    print(f"✗ Workbook API unhealthy: {report['error']}")
    return 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Check Workbook API connectivity")
    parser.add_argument("--env", default=Config.ENVIRONMENT, choices=["dev", "prod"])
    parser.add_argument("--verbose", action="store_true", help="Log every API call")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else Config.LOG_LEVEL)
    return asyncio.run(run_check(args.env))


if __name__ == "__main__":
    sys.exit(main())
