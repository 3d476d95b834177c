"""Command-line entry point for the scheduled integrity sweeps.

Run from cron (or any scheduler) roughly hourly::

    launchpad-reconcile            # status reconciliation only
    launchpad-reconcile --slugs    # also regenerate malformed slugs

Exits non-zero when the database is unreachable so the scheduler can alert;
the next run simply tries again.
"""
import argparse
import json
import logging
import sys
from typing import Optional

from launchpad.database import db_session
from launchpad.errors import DatastoreUnavailable
from launchpad.services import reconciliation_service

logger = logging.getLogger(__name__)


def run(repair_slugs: bool = False) -> dict:
    with db_session() as db:
        result = reconciliation_service.reconcile(db)
        summary = {
            "repaired_count": result.repaired_count,
            "repaired_ids": result.repaired_ids,
        }
        if repair_slugs:
            slug_result = reconciliation_service.repair_slugs(db)
            summary["slugs_checked"] = slug_result.checked
            summary["slugs_repaired"] = len(slug_result.repaired)
            summary["slug_failures"] = slug_result.failed_ids
    return summary


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Repair startups with invalid moderation status or slug.")
    parser.add_argument("--slugs", action="store_true", help="also regenerate malformed slugs")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        summary = run(repair_slugs=args.slugs)
    except DatastoreUnavailable as exc:
        logger.error("Reconciliation aborted: %s", exc.detail)
        return 1

    print(json.dumps(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
