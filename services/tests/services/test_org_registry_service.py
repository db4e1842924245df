"""Tests for the database-backed organization registry."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.auth.errors import OrgRegistryError
from orgroles.auth.org_resolver import OrgRegistry
from orgroles.services.org_registry_service import DatabaseOrgRegistry


@pytest.fixture
def mock_db():
    db = AsyncMock(spec=AsyncSession)
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = None
    db.execute.return_value = mock_result
    return db


@pytest.fixture
def session_factory(mock_db):
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_db
    return factory


class TestDatabaseOrgRegistry:
    def test_satisfies_protocol(self, session_factory):
        assert isinstance(DatabaseOrgRegistry(session_factory), OrgRegistry)

    async def test_lookup_by_name_found(self, mock_db, session_factory):
        mock_db.execute.return_value.scalar_one_or_none.return_value = 11
        registry = DatabaseOrgRegistry(session_factory)

        assert await registry.lookup_by_name("org_foo") == 11
        mock_db.execute.assert_awaited_once()
        statement = mock_db.execute.await_args.args[0]
        assert "organizations.name" in str(statement)

    async def test_lookup_by_name_missing(self, session_factory):
        registry = DatabaseOrgRegistry(session_factory)
        assert await registry.lookup_by_name("invalid_org") is None

    async def test_exists(self, mock_db, session_factory):
        mock_db.execute.return_value.scalar_one_or_none.return_value = 12
        registry = DatabaseOrgRegistry(session_factory)
        assert await registry.exists(12) is True

    async def test_not_exists(self, session_factory):
        registry = DatabaseOrgRegistry(session_factory)
        assert await registry.exists(99) is False

    async def test_each_lookup_uses_own_session(self, session_factory):
        registry = DatabaseOrgRegistry(session_factory)
        await registry.lookup_by_name("org_foo")
        await registry.exists(11)
        assert session_factory.call_count == 2

    async def test_database_error_wrapped(self, mock_db, session_factory):
        mock_db.execute.side_effect = OperationalError(
            "SELECT", {}, Exception("connection refused")
        )
        registry = DatabaseOrgRegistry(session_factory)

        with pytest.raises(OrgRegistryError, match="connection refused") as exc_info:
            await registry.lookup_by_name("org_foo")
        assert isinstance(exc_info.value.__cause__, OperationalError)

    async def test_database_error_on_exists(self, mock_db, session_factory):
        mock_db.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))
        registry = DatabaseOrgRegistry(session_factory)

        with pytest.raises(OrgRegistryError):
            await registry.exists(11)
