from __future__ import annotations

from dataclasses import dataclass

from socadmin.core.config import get_settings


@dataclass(frozen=True)
class TenantPredicateError(RuntimeError):
    # Surface missing company/client predicates when guard enforcement is enabled.
    message: str


def require_scope_id(scope: str, scope_id: str | None) -> None:
    # Every tenant-owned query must carry an explicit company or client filter.
    settings = get_settings()
    if not settings.authz_require_tenant_predicate:
        return
    if not scope_id:
        raise TenantPredicateError(f"{scope} predicate required but {scope}_id is missing")


def company_predicate(model, company_id: str) -> object:
    # Build company predicates through a single helper to guarantee guard coverage.
    require_scope_id("company", company_id)
    return model.company_id == company_id


def client_predicate(model, client_id: str) -> object:
    require_scope_id("client", client_id)
    return model.client_id == client_id
