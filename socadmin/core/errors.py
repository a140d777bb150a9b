from __future__ import annotations


class SocAdminError(Exception):
    """Base error for the SOC admin service."""


class EmbeddingUnavailable(SocAdminError):
    """Embedding endpoint unreachable or returned a non-success status."""


class InvalidEmbedding(SocAdminError):
    """Embedding response lacked a numeric vector of the expected size."""


class ChatUnavailable(SocAdminError):
    """Chat completion endpoint unreachable or returned a non-success status."""


class ProviderConfigError(SocAdminError):
    """Missing or invalid provider configuration."""


class KnowledgeStoreError(SocAdminError):
    """Knowledge base read/write failure."""


class NoEmbeddingsGenerated(SocAdminError):
    """Batch ingestion finished without a single embedded item."""


class NothingToSync(SocAdminError):
    """Vulnerability sync found no assets or no vulnerabilities."""


class DatabaseError(SocAdminError):
    """Database layer failure."""


class NotFoundError(SocAdminError):
    """Requested record does not exist inside the caller's scope."""


class ConflictError(SocAdminError):
    """Write would violate a uniqueness rule."""


class ProtectedRoleError(SocAdminError):
    """Seed roles cannot be deleted."""


class MissingCompanyError(SocAdminError):
    """Caller is not associated with a company."""
