#!/usr/bin/env python3
"""Delete sent notifications and their deliveries (inbox state). Quotas, subscriptions and devices are kept.
Run from backend: python scripts/clear_notification_state.py
"""
import sys
from pathlib import Path

# Ensure backend is on path when run as script
backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlalchemy import text

from townhub.db import NOTIFICATION_TABLE_NAMES
from townhub.db.session import SessionLocal


def main():
    db = SessionLocal()
    try:
        deleted = {}
        # Children first (deliveries reference notifications)
        for table in NOTIFICATION_TABLE_NAMES:
            deleted[table] = db.execute(text(f"DELETE FROM {table}")).rowcount
        db.commit()
        print("Notification state cleared. Rows deleted:")
        for table, count in deleted.items():
            print(f"  {table}: {count}")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
