from __future__ import annotations

import asyncio
import sys
from uuid import uuid4

from sqlalchemy import select

from socadmin.domain.models import Client, Company, Profile
from socadmin.domain.permissions import SUPER_ADMIN_ROLE, AppRole
from socadmin.ingestion.embeddings import HashEmbeddingClient
from socadmin.persistence.db import SessionLocal
from socadmin.persistence.repos import assets as assets_repo
from socadmin.persistence.repos import roles as roles_repo
from socadmin.services import knowledge as knowledge_service
from socadmin.services.knowledge import DocumentInput


DEMO_COMPANY_ID = "demo-company"
DEMO_CLIENT_ID = "demo-client"
DEMO_ADMIN_USER_ID = "demo-admin"

DEMO_ASSETS = (
    (
        "web-01",
        "10.0.0.10",
        "online",
        [
            {
                "name": "OpenSSH user enumeration",
                "severity": "medium",
                "cve": "CVE-2018-15473",
                "cvss_score": 5.3,
                "remediation": "Upgrade OpenSSH to 7.8 or later",
            }
        ],
    ),
    ("db-01", "10.0.0.20", "online", []),
    (
        "legacy-fs",
        "10.0.0.30",
        "offline",
        [
            {
                "title": "SMBv1 enabled",
                "severity": "critical",
                "status": "Open",
                "cve": "CVE-2017-0144",
                "cvss_score": 8.1,
                "remediation": "Disable SMBv1 and apply MS17-010",
            }
        ],
    ),
)

DEMO_DOCUMENTS = (
    "Incident response: isolate the host from the network before collecting volatile memory.",
    "Escalation policy: critical alerts page the on-call analyst within five minutes.",
)


async def seed_demo() -> int:
    async with SessionLocal() as session:
        if await session.get(Company, DEMO_COMPANY_ID) is not None:
            print("Demo company already seeded; skipping.")
            return 0

        session.add(Company(id=DEMO_COMPANY_ID, name="Demo SOC", email="soc@example.com", settings_json={}))
        session.add(
            Client(
                id=DEMO_CLIENT_ID,
                company_id=DEMO_COMPANY_ID,
                name="Acme Corp",
                email="security@acme.example",
                settings_json={"status": "active"},
            )
        )
        await session.flush()

        existing = await session.execute(select(Profile).where(Profile.user_id == DEMO_ADMIN_USER_ID))
        if existing.scalar_one_or_none() is None:
            session.add(
                Profile(
                    id=uuid4().hex,
                    user_id=DEMO_ADMIN_USER_ID,
                    display_name="Demo Admin",
                    email="admin@example.com",
                    company_id=DEMO_COMPANY_ID,
                    role=AppRole.SUPER_ADMIN.value,
                )
            )
        role = await roles_repo.get_role_by_name(session, SUPER_ADMIN_ROLE)
        if role is None:
            raise RuntimeError("Seed roles missing; run alembic upgrade head first")
        await roles_repo.assign_role(
            session, assignment_id=uuid4().hex, user_id=DEMO_ADMIN_USER_ID, role_id=role.id
        )

        for name, ip_address, status, vulns in DEMO_ASSETS:
            await assets_repo.create_asset(
                session,
                asset_id=uuid4().hex,
                client_id=DEMO_CLIENT_ID,
                name=name,
                ip_address=ip_address,
                status=status,
                vulnerabilities_json=vulns,
            )
        await session.commit()

        # The hash embedder keeps the demo usable without a local model server.
        embedder = HashEmbeddingClient()
        result = await knowledge_service.embed_documents(
            session,
            [DocumentInput(content=text, metadata={"source": "demo"}) for text in DEMO_DOCUMENTS],
            client_id=DEMO_CLIENT_ID,
            embedder=embedder,
        )
        synced = await knowledge_service.sync_vulnerabilities(
            session, client_id=DEMO_CLIENT_ID, client_name="Acme Corp", embedder=embedder
        )
        print(
            f"Seeded demo company with {len(DEMO_ASSETS)} assets, "
            f"{result.chunks_processed} knowledge chunks and {synced.chunks_processed} vulnerability entries."
        )
        return 0


def main() -> int:
    try:
        return asyncio.run(seed_demo())
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"seed_demo failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
