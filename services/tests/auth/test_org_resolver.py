"""Tests for organization resolution."""

from unittest.mock import AsyncMock

import pytest

from orgroles.auth.errors import IncorrectMappingError, OrgNotFoundError, OrgRegistryError
from orgroles.auth.org_mapping import Candidate
from orgroles.auth.org_resolver import (
    MAX_ORG_ID,
    OrgRegistry,
    StaticOrgRegistry,
    resolve_org_id,
)
from orgroles.config import OrganizationEntry


def _candidate(org_id: int = 0, org_name: str = "") -> Candidate:
    return Candidate(
        claim_value="org_foo",
        org_id=org_id,
        org_name=org_name,
        role="Editor",
        rule_text="org_foo:x:Editor",
    )


@pytest.fixture
def registry():
    return StaticOrgRegistry({"org_foo": 11, "org_bar": 12})


class TestStaticOrgRegistry:
    async def test_lookup_by_name(self, registry):
        assert await registry.lookup_by_name("org_foo") == 11
        assert await registry.lookup_by_name("Org_Foo") is None

    async def test_exists(self, registry):
        assert await registry.exists(12) is True
        assert await registry.exists(13) is False

    async def test_from_entries(self):
        registry = StaticOrgRegistry.from_entries(
            [OrganizationEntry(name="org_foo", id=11), OrganizationEntry(name="org_bar", id=12)]
        )
        assert await registry.lookup_by_name("org_bar") == 12
        assert await registry.exists(11) is True

    def test_satisfies_protocol(self, registry):
        assert isinstance(registry, OrgRegistry)


class TestResolveOrgId:
    async def test_by_name(self, registry):
        assert await resolve_org_id(registry, _candidate(org_name="org_bar")) == 12

    async def test_by_id(self, registry):
        assert await resolve_org_id(registry, _candidate(org_id=11)) == 11

    async def test_id_takes_precedence_over_name(self, registry):
        assert await resolve_org_id(registry, _candidate(org_id=12, org_name="org_foo")) == 12

    async def test_unknown_name(self, registry):
        with pytest.raises(OrgNotFoundError) as exc_info:
            await resolve_org_id(registry, _candidate(org_name="invalid_org"))
        assert exc_info.value.identifier == "invalid_org"

    async def test_unknown_id(self, registry):
        with pytest.raises(OrgNotFoundError):
            await resolve_org_id(registry, _candidate(org_id=99))

    async def test_id_beyond_bigint_not_looked_up(self):
        registry = AsyncMock()
        with pytest.raises(OrgNotFoundError):
            await resolve_org_id(registry, _candidate(org_id=MAX_ORG_ID + 1))
        registry.exists.assert_not_called()

    @pytest.mark.parametrize("org_id", [0, -3])
    async def test_no_identifier(self, registry, org_id):
        with pytest.raises(IncorrectMappingError):
            await resolve_org_id(registry, _candidate(org_id=org_id))

    async def test_no_identifier_skips_registry(self):
        registry = AsyncMock()
        with pytest.raises(IncorrectMappingError):
            await resolve_org_id(registry, _candidate())
        registry.lookup_by_name.assert_not_called()
        registry.exists.assert_not_called()

    async def test_registry_failure_wrapped(self):
        registry = AsyncMock()
        registry.lookup_by_name.side_effect = OrgRegistryError("connection refused")
        with pytest.raises(OrgRegistryError, match="org_bar.*connection refused") as exc_info:
            await resolve_org_id(registry, _candidate(org_name="org_bar"))
        assert isinstance(exc_info.value.__cause__, OrgRegistryError)
