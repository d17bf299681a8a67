#!/usr/bin/env python3
"""Run the monthly quota reset once (same as GET /cron/reset-quotas). Only counters that are due are reset.
Run from backend: python scripts/reset_quotas.py
"""
import logging
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from townhub.scheduler.quota_reset_job import run_quota_reset_job


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    result = run_quota_reset_job()
    if result is None:
        print("Quota reset failed; see log above.", file=sys.stderr)
        sys.exit(1)
    print(f"Reset {result.reset_count} counter(s), {result.failed_count} failed (as of {result.reset_at.isoformat()})")
    sys.exit(1 if result.failed_count else 0)


if __name__ == "__main__":
    main()
