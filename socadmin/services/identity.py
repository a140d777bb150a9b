from __future__ import annotations

import logging
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.core.errors import ConflictError
from socadmin.domain.models import Profile
from socadmin.domain.permissions import AppRole
from socadmin.persistence.repos import profiles as profiles_repo
from socadmin.services.mutations import mutation

logger = logging.getLogger(__name__)


async def resolve_profile(session: AsyncSession, user_id: str) -> Profile | None:
    return await profiles_repo.get_by_user_id(session, user_id)


async def register_identity(
    session: AsyncSession,
    *,
    user_id: str,
    email: str | None,
    name: str | None = None,
    company_id: str | None = None,
) -> tuple[Profile, bool]:
    """Create the profile for a newly registered identity.

    The profile joins ``company_id`` (the registering admin's company) so it
    shows up in that company's user list. Idempotent: a second registration
    for the same ``user_id`` returns the existing profile with
    ``created=False``, attaching it to ``company_id`` when it had none.
    """
    existing = await profiles_repo.get_by_user_id(session, user_id)
    if existing is not None:
        if company_id and existing.company_id not in (None, company_id):
            # Profiles never move between companies.
            raise ConflictError("Identity is already registered to another company")
        if company_id and existing.company_id is None:
            async with mutation(session, "attach profile"):
                existing.company_id = company_id
            logger.info("profile_attached user_id=%s company_id=%s", user_id, company_id)
        return existing, False
    async with mutation(session, "create profile"):
        profile = await profiles_repo.create_profile(
            session,
            profile_id=uuid4().hex,
            user_id=user_id,
            # Fall back to the email when the identity provider supplied no name.
            display_name=name or email,
            email=email,
            role=AppRole.CLIENT_USER.value,
            company_id=company_id,
        )
    logger.info("profile_registered user_id=%s company_id=%s", user_id, company_id)
    return profile, True
