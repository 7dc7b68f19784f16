#!/usr/bin/env python3
"""
Mint an actor token for local development.

Production tokens come from the identity service; this signs one with the
local SECRET_KEY so the API can be exercised by hand.
"""

import argparse
from datetime import timedelta

from artgram_booking_platform.schemas.common import Actor, ActorRole
from artgram_booking_platform.utils.auth import create_access_token


def main():
    parser = argparse.ArgumentParser(description="Mint a development actor token")
    parser.add_argument("actor_id", help="Identity-service user ID")
    parser.add_argument("--role", choices=[role.value for role in ActorRole], default=ActorRole.CUSTOMER.value)
    parser.add_argument("--branch-id", help="Branch a manager is scoped to")
    parser.add_argument("--name")
    parser.add_argument("--email")
    parser.add_argument("--phone")
    parser.add_argument("--minutes", type=int, default=8 * 60, help="Token lifetime")
    args = parser.parse_args()

    actor = Actor(
        id=args.actor_id,
        role=ActorRole(args.role),
        branch_id=args.branch_id,
        name=args.name,
        email=args.email,
        phone=args.phone,
    )
    print(create_access_token(actor, expires_delta=timedelta(minutes=args.minutes)))


if __name__ == "__main__":
    main()
