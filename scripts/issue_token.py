"""Utility script to mint a bearer token for local development."""

from __future__ import annotations

import argparse
from datetime import timedelta

from church_notify.domain.entities import ViewerRole
from church_notify.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for token creation."""

    parser = argparse.ArgumentParser(
        description="Issue a JWT accepted by the notification API and stream.",
    )
    parser.add_argument("user_id", help="Identifier stored in the sub claim")
    parser.add_argument(
        "--role",
        default="member",
        choices=["super_admin", "admin", "member", "visitor"],
        help="Role claim (default: member)",
    )
    parser.add_argument("--name", default=None, help="Display name (optional)")
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Lifetime in minutes. Defaults to ACCESS_TOKEN_EXPIRE_MINUTES.",
    )
    return parser.parse_args()


def main() -> None:
    """Print a token for the provided claims."""

    args = parse_args()
    if not args.user_id.strip():
        raise SystemExit("A non-empty user id is required.")

    claims = {"sub": args.user_id, "role": args.role}
    if args.name:
        claims["name"] = args.name

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    token = create_access_token(claims, expires_delta=expires)
    print(
        f"Token for {args.user_id} "
        f"(effective role: {ViewerRole.from_claim(args.role).value}):\n{token}"
    )


if __name__ == "__main__":
    main()
