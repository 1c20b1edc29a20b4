from __future__ import annotations

import argparse
import asyncio
import sys

from complaintdesk.domain.models import User
from complaintdesk.domain.records import ROLE_ADMIN, utc_now
from complaintdesk.persistence.db import SessionLocal
from complaintdesk.services.audit import record_event


def _build_parser() -> argparse.ArgumentParser:
    # Admin profiles are never created through the public registration flow.
    parser = argparse.ArgumentParser(description="Create or promote an administrator profile")
    parser.add_argument("--user-id", required=True, help="Subject id issued by the identity provider")
    parser.add_argument("--email", required=True, help="Administrator email")
    parser.add_argument("--name", default=None, help="Optional display name")
    return parser


async def _create_admin(args: argparse.Namespace) -> int:
    async with SessionLocal() as session:
        user = await session.get(User, args.user_id)
        if user is None:
            user = User(
                id=args.user_id,
                email=args.email,
                name=args.name or args.email.split("@")[0],
                role=ROLE_ADMIN,
                org_id=None,
                created_at=utc_now(),
            )
            session.add(user)
        else:
            # Admins are global; drop any organization binding on promotion.
            user.role = ROLE_ADMIN
            user.org_id = None
            if args.name:
                user.name = args.name
        await session.commit()

        await record_event(
            session=session,
            action=f"Provisioned administrator {args.email}",
            admin_id=None,
            best_effort=False,
        )

    print("Administrator ready:")
    print(f"  user_id: {args.user_id}")
    print(f"  email: {args.email}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_create_admin(args))
    except Exception as exc:  # noqa: BLE001 - surface provisioning failures clearly
        print(f"create_admin failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
