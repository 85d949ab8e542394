"""Utility script to delete old notifications and their read receipts."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from church_notify.infrastructure.database import SessionLocal, initialize_database
from church_notify.infrastructure.repositories import NotificationRepository


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Remove notifications created more than N days ago.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=30,
        help="Age in days after which notifications are deleted (default: 30)",
    )
    return parser.parse_args()


def main() -> None:
    """Delete notifications older than the requested age."""

    args = parse_args()
    if args.days < 1:
        raise SystemExit("--days must be at least 1.")

    initialize_database()

    session = SessionLocal()
    try:
        deleted = NotificationRepository(session).delete_older_than(args.days)
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Could not delete old notifications: {exc}") from exc
    else:
        print(f"Deleted {deleted} notifications older than {args.days} days.")
    finally:
        session.close()


if __name__ == "__main__":
    main()
