from __future__ import annotations

import argparse
import asyncio
import sys

from socadmin.persistence.db import SessionLocal
from socadmin.persistence.repos import api_keys as api_keys_repo
from socadmin.services.auth.api_keys import parse_key_id


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Revoke a console API key by id")
    parser.add_argument("key", help="API key id, or the raw key itself")
    return parser


async def _revoke_key(key_id: str) -> int:
    async with SessionLocal() as session:
        api_key = await api_keys_repo.get_by_id(session, key_id)
        if api_key is None:
            raise ValueError("API key not found")
        if api_key.revoked_at is not None:
            print(f"API key {key_id} was already revoked")
            return 0
        await api_keys_repo.revoke(session, key_id)
        await session.commit()
    # Running API processes may keep a cached principal for AUTH_CACHE_TTL_S seconds.
    print(f"Revoked API key {key_id} (prefix {api_key.key_prefix})")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_revoke_key(parse_key_id(args.key) or args.key))
    except Exception as exc:  # noqa: BLE001 - surface provisioning failures clearly
        print(f"revoke_api_key failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
