"""Org role mapper registry.

Builds one OrgRoleMapper per configured identity provider, keyed by
provider name. Mapping rules are parsed once here, so configuration errors
fail at startup rather than on a user's login.
"""

from orgroles.auth.errors import OrgMappingConfigError
from orgroles.auth.org_mapping import build_mapping_spec
from orgroles.auth.org_resolver import OrgRegistry
from orgroles.auth.org_role_mapper import OrgRoleMapper
from orgroles.auth.roles import RoleType
from orgroles.config import OrgMappingConfig, settings
from orgroles.logging_config import get_logger

logger = get_logger(__name__)

# Registry of initialized mappers
_mappers: dict[str, OrgRoleMapper] = {}
_provider_configs: dict[str, OrgMappingConfig] = {}


def init_mappers(registry: OrgRegistry, parallel_lookups: bool = False) -> None:
    """Build mappers for all configured providers.

    Raises:
        OrgMappingConfigError: a provider's mapping is malformed, or two
            providers share a name.
    """
    _mappers.clear()
    _provider_configs.clear()

    for provider in settings.providers:
        if provider.name in _provider_configs:
            raise OrgMappingConfigError(f"duplicate provider name {provider.name!r}")

        spec = build_mapping_spec(provider)
        _provider_configs[provider.name] = provider
        _mappers[provider.name] = OrgRoleMapper(
            spec,
            registry,
            logger=get_logger("orgroles.auth.org_role_mapper").bind(provider=provider.name),
            parallel_lookups=parallel_lookups,
        )
        logger.info(
            "Registered org role mapping",
            provider=provider.name,
            mapping=spec.kind,
            skip_org_role_sync=provider.skip_org_role_sync,
        )

    logger.info("Org role mappers initialized", count=len(_mappers))


def get_mapper(name: str) -> OrgRoleMapper | None:
    """Get a mapper by provider name."""
    return _mappers.get(name)


def get_provider_config(name: str) -> OrgMappingConfig | None:
    """Get a provider's mapping configuration by name."""
    return _provider_configs.get(name)


def list_mappers() -> list[dict[str, str]]:
    """List configured providers with their mapping kind."""
    return [{"name": name, "mapping": mapper.spec.kind} for name, mapper in _mappers.items()]


async def resolve_org_roles(
    provider_name: str,
    raw_json: bytes | str,
    deadline: float | None = None,
) -> dict[int, RoleType] | None:
    """Resolve org roles for a login through the named provider.

    Returns:
        The org id to role mapping, or None when org role sync is disabled
        for the provider (existing org memberships should be left as-is).

    Raises:
        OrgMappingConfigError: no provider with that name is configured.
    """
    mapper = _mappers.get(provider_name)
    if mapper is None:
        raise OrgMappingConfigError(f"unknown provider {provider_name!r}")

    if _provider_configs[provider_name].skip_org_role_sync:
        logger.debug("Org role sync skipped", provider=provider_name)
        return None

    return await mapper.map_org_roles(raw_json, deadline=deadline)
