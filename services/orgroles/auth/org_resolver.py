"""Organization resolution against an external registry.

Defines the OrgRegistry Protocol that registry backends must satisfy, an
in-memory registry built from configuration, and resolve_org_id() which
turns a candidate's org name or id into a confirmed org id.
"""

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from orgroles.auth.errors import IncorrectMappingError, OrgNotFoundError, OrgRegistryError
from orgroles.auth.org_mapping import Candidate
from orgroles.config import OrganizationEntry

# Organization ids are stored as BIGINT.
MAX_ORG_ID = 2**63 - 1

# --- Protocol ---


@runtime_checkable
class OrgRegistry(Protocol):
    """Protocol defining the organization lookup interface.

    Both methods may block on I/O. Implementations raise OrgRegistryError
    when the registry itself fails; a missing organization is not an error.
    """

    async def lookup_by_name(self, name: str) -> int | None:
        """Return the id of the organization with exactly this name, or None."""
        ...

    async def exists(self, org_id: int) -> bool:
        """Check whether an organization with this id exists."""
        ...


class StaticOrgRegistry:
    """Registry over a fixed set of organizations (config or tests)."""

    def __init__(self, organizations: dict[str, int]) -> None:
        self._ids_by_name = dict(organizations)
        self._ids = frozenset(organizations.values())

    @classmethod
    def from_entries(cls, entries: Iterable[OrganizationEntry]) -> "StaticOrgRegistry":
        return cls({entry.name: entry.id for entry in entries})

    async def lookup_by_name(self, name: str) -> int | None:
        return self._ids_by_name.get(name)

    async def exists(self, org_id: int) -> bool:
        return org_id in self._ids


async def resolve_org_id(registry: OrgRegistry, candidate: Candidate) -> int:
    """Resolve a candidate's organization to a confirmed org id.

    Numeric ids are used directly once the registry confirms them; names are
    looked up by exact match.

    Raises:
        IncorrectMappingError: candidate has no positive id and no name.
        OrgNotFoundError: the registry has no such organization, or the id
            is out of range for any organization.
        OrgRegistryError: the registry failed; the message names the org.
    """
    if candidate.org_id > 0:
        identifier: str | int = candidate.org_id
    elif candidate.org_name:
        identifier = candidate.org_name
    else:
        raise IncorrectMappingError(f"no organization in mapping {candidate}")

    if isinstance(identifier, int) and identifier > MAX_ORG_ID:
        raise OrgNotFoundError(identifier)

    try:
        if isinstance(identifier, int):
            found = await registry.exists(identifier)
            org_id = identifier if found else None
        else:
            org_id = await registry.lookup_by_name(identifier)
    except OrgRegistryError as e:
        raise OrgRegistryError(f"failed to look up organization {identifier!r}: {e}") from e

    if org_id is None:
        raise OrgNotFoundError(identifier)
    return org_id
