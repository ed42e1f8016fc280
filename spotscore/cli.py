"""
Cron Entry Point
================

Runs one batch job and prints its summary as JSON.

Usage:
    python -m spotscore.cli refresh-static [--spot-id ID ...]
    python -m spotscore.cli refresh-dynamic [--department 69] [--batch-size 50]
    python -m spotscore.cli validate [--department 69] [--batch-size 50] [--auto-decide]
"""

import argparse
import asyncio
import json
import logging
from typing import Dict, List, Optional

from spotscore.core.config import settings
from spotscore.core.logging import configure_logging
from spotscore.gateway import OpenDataGateway
from spotscore.jobs import refresh_dynamic_scores, refresh_static_scores, validate_spots_batch
from spotscore.repositories import SqlAlchemySpotRepository
from spotscore.services.database import session_scope

logger = logging.getLogger(__name__)


async def run_job(args: argparse.Namespace) -> Dict[str, int]:
    """Open a session and a gateway, then run the selected job."""
    async with session_scope() as session, OpenDataGateway() as gateway:
        repository = SqlAlchemySpotRepository(session)

        if args.command == "refresh-static":
            return await refresh_static_scores(repository, gateway, spot_ids=args.spot_ids)
        if args.command == "refresh-dynamic":
            return await refresh_dynamic_scores(
                repository, gateway, department=args.department, batch_size=args.batch_size
            )
        return await validate_spots_batch(
            repository,
            gateway,
            department=args.department,
            batch_size=args.batch_size,
            auto_decide=args.auto_decide,
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spotscore", description="Fishing spot scoring jobs")
    parser.add_argument("--log-level", help="Override the configured log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    static = subparsers.add_parser("refresh-static", help="Recompute static scores")
    static.add_argument(
        "--spot-id",
        dest="spot_ids",
        action="append",
        help="Spot to refresh (repeatable); defaults to every approved spot",
    )

    dynamic = subparsers.add_parser("refresh-dynamic", help="Recompute dynamic scores")
    dynamic.add_argument("--department", help="Department code, e.g. 69")
    dynamic.add_argument("--batch-size", type=int, default=settings.BATCH_SIZE)

    validate = subparsers.add_parser("validate", help="Validate auto-discovered spots")
    validate.add_argument("--department", help="Department code, e.g. 69")
    validate.add_argument("--batch-size", type=int, default=50)
    validate.add_argument(
        "--auto-decide",
        action="store_true",
        help="Approve, reject or flag spots from their confidence score",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    logger.info(f"Starting job {args.command}")
    summary = asyncio.run(run_job(args))
    print(json.dumps({"job": args.command, **summary}))


if __name__ == "__main__":
    main()
