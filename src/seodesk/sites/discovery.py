"""Site discovery: diff the user's Search Console properties against stored sites."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from seodesk.common.result import ErrorKind, Result
from seodesk.db.models import Group, Site, User
from seodesk.gsc.properties import property_domain

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from seodesk.gsc.client import SearchConsole

logger = structlog.get_logger()


class SiteReconciler:
    """Adds Search Console properties the user has not seen yet.

    Property ids are matched by exact string; collapsing ``sc-domain:`` and
    URL-prefix variants of one host is the client's job. Running discovery
    twice against an unchanged property list adds nothing the second time.
    """

    def __init__(self, session: AsyncSession, gsc: SearchConsole) -> None:
        self.session = session
        self.gsc = gsc

    async def discover(self, user_id: uuid.UUID) -> Result[int]:
        """Insert every unseen property as a site in the default group. Returns how many were added."""
        user = await self.session.get(User, user_id)
        if user is None or not user.google_refresh_token:
            return Result.fail("User or refresh token not found", ErrorKind.NOT_FOUND)

        try:
            remote = await self.gsc.list_sites(user.google_refresh_token)

            existing = set(
                (await self.session.execute(select(Site.property_id).where(Site.user_id == user_id))).scalars()
            )
            missing = [pid for pid in dict.fromkeys(remote) if pid not in existing]
            if not missing:
                logger.info("site_discovery_complete", user_id=str(user_id), remote=len(remote), added=0)
                return Result.success(0)

            group_id = await self._default_group_id(user_id)
            now = datetime.now(timezone.utc)
            for property_id in missing:
                self.session.add(
                    Site(
                        user_id=user_id,
                        group_id=group_id,
                        property_id=property_id,
                        domain=property_domain(property_id),
                        is_favorite=False,
                        created_at=now,
                    )
                )
                logger.debug("site_discovered", user_id=str(user_id), property_id=property_id)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.warning("site_discovery_failed", user_id=str(user_id), error=str(e))
            return Result.fail(f"Discovery failed: {e}", ErrorKind.EXTERNAL)

        logger.info("site_discovery_complete", user_id=str(user_id), remote=len(remote), added=len(missing))
        return Result.success(len(missing))

    async def _default_group_id(self, user_id: uuid.UUID) -> uuid.UUID | None:
        """The flagged default group, else the oldest group, else None."""
        result = await self.session.execute(
            select(Group.id)
            .where(Group.user_id == user_id)
            .order_by(Group.is_default.desc(), Group.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()
