"""Database-backed organization registry.

Satisfies the OrgRegistry protocol over the organizations table. Lookups
are read-only; each call uses its own short-lived session so that
concurrent lookups never share one.
"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orgroles.auth.errors import OrgRegistryError
from orgroles.db.models import Organization
from orgroles.logging_config import get_logger

logger = get_logger(__name__)


class DatabaseOrgRegistry:
    """Organization registry backed by PostgreSQL."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def lookup_by_name(self, name: str) -> int | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Organization.id).where(Organization.name == name)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Organization lookup failed", name=name, error=str(e))
            raise OrgRegistryError(str(e)) from e

    async def exists(self, org_id: int) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Organization.id).where(Organization.id == org_id)
                )
                return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            logger.error("Organization lookup failed", org_id=org_id, error=str(e))
            raise OrgRegistryError(str(e)) from e
