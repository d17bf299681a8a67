#!/usr/bin/env python3
"""
Quick checks so the backend can start. Run from repo root or backend/:
  python scripts/check_backend.py
  # or from repo root:
  cd backend && python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        errors.append("backend/.env missing. Copy from backend/.env.example and set DATABASE_URL, CRON_SECRET, etc.")
    else:
        print("OK  .env exists")

    # 2) DB connection and schema
    try:
        from sqlalchemy import inspect, text

        from townhub.db import ALL_TABLE_NAMES
        from townhub.db.session import engine

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
        missing = sorted(set(ALL_TABLE_NAMES) - set(inspect(engine).get_table_names()))
        if missing:
            errors.append(f"Tables missing: {', '.join(missing)}. Run: alembic upgrade head")
            print("FAIL Tables missing:", ", ".join(missing))
        else:
            print("OK  All tables present")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 3) Push provider
    try:
        from townhub.config import settings

        if settings.push_provider == "none":
            print("WARN PUSH_PROVIDER=none: notifications are recorded but never delivered")
        elif settings.push_provider == "apns" and not (settings.apns_key_id and settings.apns_key_p8_path):
            errors.append("PUSH_PROVIDER=apns but APNS_KEY_ID / APNS_KEY_P8_PATH are not set")
            print("FAIL APNs not configured")
        else:
            print(f"OK  Push provider: {settings.push_provider}")
        if not settings.cron_secret:
            print("WARN CRON_SECRET not set: /cron/reset-quotas accepts unauthenticated calls")
    except Exception as e:
        errors.append(f"Settings: {e}")
        print("FAIL Settings:", e)

    # 4) App import (catches missing deps, bad imports)
    try:
        from townhub.main import app  # noqa: F401

        print("OK  App import (townhub.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)
        print("\nFix the above, then run:")
        print("  cd backend && uvicorn townhub.main:app --reload --host 0.0.0.0 --port 8000")
        return 1

    # 5) Port 8000
    try:
        import socket

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 8000))
        print("OK  Port 8000 is free")
    except OSError:
        errors.append("Port 8000 is in use. Stop the other process or use another port (e.g. --port 8001).")
        print("FAIL Port 8000 is in use")

    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: cd backend && uvicorn townhub.main:app --reload")
    return 0


if __name__ == "__main__":
    sys.exit(main())
