"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from __future__ import annotations

from uuid import uuid4

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from pgvector.sqlalchemy import Vector

from socadmin.core.config import EMBED_DIM
from socadmin.domain.permissions import SEED_ROLES, serialize_permissions

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Ensure pgvector is enabled for every environment, not just manual setup.
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "companies",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("settings_json", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        *_timestamps(),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("company_id", sa.String(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column(
            "settings_json",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("""'{"status": "active"}'::jsonb"""),
        ),
        *_timestamps(),
    )
    op.create_index("ix_clients_company_id", "clients", ["company_id"])

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("client_id", sa.String(), sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        sa.Column("company_id", sa.String(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="client_user"),
        *_timestamps(),
    )
    op.create_index("ix_profiles_user_id", "profiles", ["user_id"], unique=True)
    op.create_index("ix_profiles_company_id", "profiles", ["company_id"])
    op.create_index("ix_profiles_company_role", "profiles", ["company_id", "role"])

    roles = op.create_table(
        "roles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("permissions_json", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        *_timestamps(),
    )

    op.create_table(
        "user_roles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("role_id", sa.String(), sa.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])
    op.create_index("ix_user_roles_role_id", "user_roles", ["role_id"])

    # Store hashed API keys only; the raw key is shown once at creation.
    op.create_table(
        "api_keys",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("key_prefix", sa.String(), nullable=False),
        sa.Column("key_hash", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_api_keys_key_hash", "api_keys", ["key_hash"], unique=True)
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"])

    op.create_table(
        "assets",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("client_id", sa.String(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="online"),
        sa.Column(
            "vulnerabilities_json", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_assets_client_id", "assets", ["client_id"])

    op.create_table(
        "logs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("event_id", sa.String(), nullable=False, unique=True),
        sa.Column("client_id", sa.String(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("severity", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="open"),
        sa.Column("host_name", sa.String(), nullable=True),
        sa.Column("process_name", sa.String(), nullable=True),
        sa.Column("source_ip", sa.String(), nullable=True),
        sa.Column("destination_ip", sa.String(), nullable=True),
        sa.Column("mitre_tactic", sa.String(), nullable=True),
        sa.Column("mitre_technique", sa.String(), nullable=True),
        sa.Column("classification", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("raw_json", postgresql.JSONB(), nullable=True),
    )
    op.create_index("ix_logs_client_timestamp", "logs", ["client_id", "timestamp"])

    op.create_table(
        "knowledge_base",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata_json", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        # Keep schema aligned with the embedding dimension used at runtime.
        sa.Column("embedding", Vector(EMBED_DIM), nullable=False),
        sa.Column("client_id", sa.String(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_knowledge_base_client_id", "knowledge_base", ["client_id"])
    op.execute(
        "CREATE INDEX ix_knowledge_base_embedding ON knowledge_base "
        "USING ivfflat (embedding vector_cosine_ops) WITH (lists = 100)"
    )

    # Same filter and ordering as the ORM search: NULL filter means global entries only.
    op.execute(
        f"""
        CREATE OR REPLACE FUNCTION match_documents(
            query_embedding vector({EMBED_DIM}),
            match_threshold double precision DEFAULT 0.7,
            match_count integer DEFAULT 5,
            filter_client_id text DEFAULT NULL
        )
        RETURNS TABLE(id text, content text, metadata jsonb, client_id text, similarity double precision)
        LANGUAGE sql STABLE
        AS $$
            SELECT
                kb.id,
                kb.content,
                kb.metadata_json,
                kb.client_id,
                1 - (kb.embedding <=> query_embedding) AS similarity
            FROM knowledge_base kb
            WHERE kb.client_id IS NOT DISTINCT FROM filter_client_id
              AND 1 - (kb.embedding <=> query_embedding) > match_threshold
            ORDER BY kb.embedding <=> query_embedding, kb.id
            LIMIT match_count;
        $$;
        """
    )

    op.bulk_insert(
        roles,
        [
            {
                "id": uuid4().hex,
                "name": name,
                "description": description,
                "permissions_json": serialize_permissions(permissions),
            }
            for name, (description, permissions) in SEED_ROLES.items()
        ],
    )


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS match_documents(vector, double precision, integer, text)")
    op.execute("DROP INDEX IF EXISTS ix_knowledge_base_embedding")
    op.drop_index("ix_knowledge_base_client_id", table_name="knowledge_base")
    op.drop_table("knowledge_base")
    op.drop_index("ix_logs_client_timestamp", table_name="logs")
    op.drop_table("logs")
    op.drop_index("ix_assets_client_id", table_name="assets")
    op.drop_table("assets")
    op.drop_index("ix_api_keys_user_id", table_name="api_keys")
    op.drop_index("ix_api_keys_key_hash", table_name="api_keys")
    op.drop_table("api_keys")
    op.drop_index("ix_user_roles_role_id", table_name="user_roles")
    op.drop_index("ix_user_roles_user_id", table_name="user_roles")
    op.drop_table("user_roles")
    op.drop_table("roles")
    op.drop_index("ix_profiles_company_role", table_name="profiles")
    op.drop_index("ix_profiles_company_id", table_name="profiles")
    op.drop_index("ix_profiles_user_id", table_name="profiles")
    op.drop_table("profiles")
    op.drop_index("ix_clients_company_id", table_name="clients")
    op.drop_table("clients")
    op.drop_table("companies")
