from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from socadmin.domain.models import ApiKey
from socadmin.persistence.db import SessionLocal
from socadmin.persistence.repos import roles as roles_repo
from socadmin.services.auth.api_keys import generate_api_key
from socadmin.services.identity import register_identity


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a console API key for a user")
    parser.add_argument("--user-id", required=True, help="Identity reference of the key owner")
    parser.add_argument("--email", default=None, help="Email used when the profile does not exist yet")
    parser.add_argument("--company-id", default=None, help="Company the profile joins when it is created")
    parser.add_argument("--name", required=True, help="Key label shown to operators")
    parser.add_argument("--role", default=None, help="Optional role name to assign, e.g. 'Super Admin'")
    parser.add_argument("--expires-days", type=int, default=None, help="Expire the key after N days")
    return parser


async def _create_key(args: argparse.Namespace) -> int:
    key_id, raw_key, key_prefix, key_hash = generate_api_key()
    expires_at = None
    if args.expires_days:
        expires_at = datetime.now(timezone.utc) + timedelta(days=args.expires_days)

    async with SessionLocal() as session:
        # Keys authenticate profiles, so make sure one exists first.
        profile, created = await register_identity(
            session, user_id=args.user_id, email=args.email, company_id=args.company_id
        )
        if args.role:
            role = await roles_repo.get_role_by_name(session, args.role)
            if role is None:
                raise ValueError(f"Unknown role: {args.role}")
            if await roles_repo.get_assignment(session, profile.user_id, role.id) is None:
                await roles_repo.assign_role(
                    session, assignment_id=uuid4().hex, user_id=profile.user_id, role_id=role.id
                )
        session.add(
            ApiKey(
                id=key_id,
                user_id=profile.user_id,
                key_prefix=key_prefix,
                key_hash=key_hash,
                name=args.name,
                expires_at=expires_at,
            )
        )
        await session.commit()

    print("API key created:")
    print(f"  key_id: {key_id}")
    print(f"  key_prefix: {key_prefix}")
    print(f"  profile_created: {created}")
    print("  api_key: ")
    print(f"    {raw_key}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_create_key(args))
    except Exception as exc:  # noqa: BLE001 - surface provisioning failures clearly
        print(f"create_api_key failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
