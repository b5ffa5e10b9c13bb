#!/usr/bin/env python3
"""
Retry webhook events that were stored but never processed.
Use after fixing whatever made the handlers fail.
"""
import argparse
import os
import sys

# Add parent directory to path to import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.logging_config import configure_logging
from app.db.session import SessionLocal
from app.services.polar_processor import reprocess_unprocessed_events


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of events to retry")
    args = parser.parse_args()

    configure_logging()
    db = SessionLocal()

    print("=" * 60)
    print("Reprocess Webhook Events")
    print("=" * 60)
    print()

    try:
        processed, failed = reprocess_unprocessed_events(db, limit=args.limit)
    finally:
        db.close()

    print(f"Processed: {processed}")
    print(f"Failed:    {failed}")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
