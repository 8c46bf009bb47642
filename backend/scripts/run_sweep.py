"""
Run one reconciliation sweep against the configured database and storage, then exit.
For cron / one-off repair when the in-process sweep is disabled (SWEEP_ENABLED=0).
Run from backend/: python scripts/run_sweep.py [--batch-size 1000]
"""
import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from scanvault.core.config import get_settings
from scanvault.db.session import async_session_factory, engine
from scanvault.services.storage import get_storage_gateway
from scanvault.services.sweeper import ReconciliationSweeper

settings = get_settings()


async def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--batch-size", type=int, default=settings.sweep_batch_size)
    parser.add_argument("--scan-timeout-minutes", type=int, default=settings.sweep_scan_timeout_minutes)
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper())
    sweeper = ReconciliationSweeper(
        async_session_factory,
        get_storage_gateway(),
        grace_period=timedelta(minutes=settings.sweep_grace_period_minutes),
        scan_timeout=timedelta(minutes=args.scan_timeout_minutes),
        batch_size=max(1, args.batch_size),
        db_timeout_seconds=settings.db_timeout_seconds,
    )
    try:
        report = await sweeper.run_once()
    finally:
        await engine.dispose()
    print(json.dumps(report.as_dict(), indent=2))
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
