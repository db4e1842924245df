"""
Resolve org roles for a saved userinfo response.

Lets operators check a provider's org mapping against a real IDP response
before rolling it out.
Run via: python -m orgroles.cli.resolve PROVIDER USERINFO_JSON [--database]

PROVIDER is a provider name from the config file (ORGROLES_CONFIG_FILE,
default /etc/orgroles/config.yaml). USERINFO_JSON is a file path, or "-"
for stdin. Organizations come from the config's static "organizations"
list, or from the database with --database.

Prints the resulting org roles and skipped mappings as JSON on stdout. For a
provider with skip_org_role_sync set, "org_roles" is null: logins through it
leave existing memberships untouched. Exits 1 on configuration or resolution
errors.
"""

import argparse
import asyncio
import json
import sys
from typing import Any

from orgroles.auth.errors import OrgRoleError
from orgroles.auth.org_resolver import OrgRegistry, StaticOrgRegistry
from orgroles.auth.org_role_mapper import Resolution
from orgroles.auth.providers import get_mapper, get_provider_config, init_mappers
from orgroles.config import settings
from orgroles.db.session import close_db, get_session_factory, init_db
from orgroles.logging_config import configure_logging, get_logger
from orgroles.services.org_registry_service import DatabaseOrgRegistry

logger = get_logger("orgroles.cli.resolve")


def render(resolution: Resolution | None) -> dict[str, Any]:
    """Render a resolution as JSON-serializable data.

    None (org role sync disabled) renders as null org roles.
    """
    if resolution is None:
        return {"org_roles": None, "warnings": []}
    return {
        "org_roles": {str(org_id): str(role) for org_id, role in resolution.org_roles.items()},
        "warnings": [
            {
                "reason": str(warning.reason),
                "config_option": warning.rule_text,
                "mapping": str(warning.candidate),
            }
            for warning in resolution.warnings
        ],
    }


async def resolve(provider: str, raw_json: bytes, registry: OrgRegistry) -> Resolution | None:
    init_mappers(registry)
    mapper = get_mapper(provider)
    if mapper is None:
        raise OrgRoleError(f"unknown provider {provider!r}")
    if get_provider_config(provider).skip_org_role_sync:
        logger.info("Org role sync disabled for provider", provider=provider)
        return None
    return await mapper.resolve(raw_json)


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="orgroles-resolve", description=__doc__.splitlines()[1])
    parser.add_argument("provider", help="Provider name from the config file")
    parser.add_argument("userinfo", help="Path to the userinfo JSON, or - for stdin")
    parser.add_argument(
        "--database",
        action="store_true",
        help="Look up organizations in the database instead of the config file",
    )
    args = parser.parse_args(argv)

    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)

    if args.userinfo == "-":
        raw_json = sys.stdin.buffer.read()
    else:
        with open(args.userinfo, "rb") as f:
            raw_json = f.read()

    if args.database:
        await init_db()
        registry: OrgRegistry = DatabaseOrgRegistry(get_session_factory())
    else:
        registry = StaticOrgRegistry.from_entries(settings.organizations)

    try:
        resolution = await resolve(args.provider, raw_json, registry)
    except OrgRoleError as e:
        logger.error("Org role resolution failed", provider=args.provider, error=str(e))
        return 1
    finally:
        if args.database:
            await close_db()

    json.dump(render(resolution), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
