from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.models import Role, UserRole


async def list_roles(session: AsyncSession) -> list[Role]:
    # Creation order keeps the seed roles at the top of the console list.
    result = await session.execute(select(Role).order_by(Role.created_at.asc(), Role.id.asc()))
    return list(result.scalars().all())


async def get_role(session: AsyncSession, role_id: str) -> Role | None:
    result = await session.execute(select(Role).where(Role.id == role_id))
    return result.scalar_one_or_none()


async def get_role_by_name(session: AsyncSession, name: str) -> Role | None:
    result = await session.execute(select(Role).where(Role.name == name))
    return result.scalar_one_or_none()


async def create_role(
    session: AsyncSession,
    *,
    role_id: str,
    name: str,
    description: str | None,
    permissions_json: list[str],
) -> Role:
    role = Role(id=role_id, name=name, description=description, permissions_json=permissions_json)
    session.add(role)
    await session.flush()
    return role


async def delete_role(session: AsyncSession, role_id: str) -> bool:
    result = await session.execute(delete(Role).where(Role.id == role_id))
    return bool(result.rowcount)


async def list_role_permissions_for_user(session: AsyncSession, user_id: str) -> list[list[str]]:
    # One permission array per assigned role; aggregation happens in the RBAC service.
    result = await session.execute(
        select(Role.permissions_json)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id)
    )
    return [list(row or []) for row in result.scalars().all()]


async def list_assignments(session: AsyncSession, user_ids: list[str]) -> list[tuple[str, Role]]:
    if not user_ids:
        return []
    result = await session.execute(
        select(UserRole.user_id, Role)
        .join(Role, UserRole.role_id == Role.id)
        .where(UserRole.user_id.in_(user_ids))
        .order_by(UserRole.created_at, UserRole.id)
    )
    return [(user_id, role) for user_id, role in result.all()]


async def get_assignment(session: AsyncSession, user_id: str, role_id: str) -> UserRole | None:
    result = await session.execute(
        select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
    )
    return result.scalar_one_or_none()


async def assign_role(session: AsyncSession, *, assignment_id: str, user_id: str, role_id: str) -> UserRole:
    row = UserRole(id=assignment_id, user_id=user_id, role_id=role_id)
    session.add(row)
    await session.flush()
    return row


async def remove_role(session: AsyncSession, user_id: str, role_id: str) -> bool:
    result = await session.execute(
        delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
    )
    return bool(result.rowcount)
