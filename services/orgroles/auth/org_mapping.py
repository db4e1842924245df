"""Org mapping configuration: rules, specs, and candidates.

Two configuration dialects are supported and selected once per provider:

- Claims mapping (current): ``org_attribute_path`` selects raw claim values
  and ``org_mapping`` holds ``claimValue:orgIdOrName:Role`` rules. A claim
  value of ``*`` matches any claim.
- Projection (legacy): ``org_roles_attribute_path`` is a query that itself
  projects ``{"OrgName"|"OrgId": ..., "Role": ...}`` objects.

Specs are frozen and hold no per-call state, so one spec serves every login
for its provider. Role and organization checks happen at resolution time so
that a single bad entry degrades gracefully.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from orgroles.auth.errors import OrgMappingConfigError
from orgroles.auth.query import evaluate, object_values, string_values
from orgroles.config import OrgMappingConfig, QueryDialect

WILDCARD = "*"

_NUMERIC_ID = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class Candidate:
    """An (organization, role) pair awaiting org resolution and role validation."""

    claim_value: str
    org_id: int  # 0 when the org is given by name
    org_name: str
    role: str  # raw role text, validated by the orchestrator
    rule_text: str  # config text that produced this candidate
    source: str = ""  # projected JSON item (projection dialect only)
    malformed: bool = False

    def __str__(self) -> str:
        if self.malformed:
            return self.source
        return f"{{{self.claim_value} {self.org_id} {self.org_name} {self.role}}}"


@dataclass(frozen=True)
class MappingRule:
    """One ``claimValue:orgIdOrName:Role`` rule."""

    match_value: str
    org_identifier: str
    role: str
    raw: str

    @property
    def is_wildcard(self) -> bool:
        return self.match_value == WILDCARD

    def matches(self, claim_value: str) -> bool:
        return self.is_wildcard or self.match_value == claim_value

    def to_candidate(self, claim_value: str) -> Candidate:
        if _NUMERIC_ID.fullmatch(self.org_identifier):
            org_id, org_name = int(self.org_identifier), ""
        else:
            org_id, org_name = 0, self.org_identifier
        return Candidate(
            claim_value=claim_value,
            org_id=org_id,
            org_name=org_name,
            role=self.role,
            rule_text=self.raw,
        )


class ProjectedOrgRole(BaseModel):
    """Shape of an object projected by a legacy org roles query."""

    model_config = ConfigDict(extra="ignore")

    org_id: int = Field(default=0, alias="OrgId")
    org_name: str = Field(default="", alias="OrgName")
    role: str = Field(alias="Role")


# --- Specs ---


@dataclass(frozen=True)
class UnconfiguredMappingSpec:
    """No org mapping configured for the provider."""

    kind = "none"
    configured = False
    config_option = ""

    def candidates(self, document: Any) -> list[Candidate]:
        return []


@dataclass(frozen=True)
class ClaimsMappingSpec:
    """Claim values selected by ``path``, expanded through ``rules``."""

    path: str
    rules: tuple[MappingRule, ...]
    dialect: QueryDialect = QueryDialect.JMESPATH

    kind = "claims"
    configured = True

    @property
    def config_option(self) -> str:
        return self.path

    def candidates(self, document: Any) -> list[Candidate]:
        """Expand every claim value through every matching rule, in order.

        One claim may match several rules (including the wildcard), which
        is how one claim maps a user into several organizations.
        """
        claim_values = string_values(evaluate(self.path, document, self.dialect))
        return [
            rule.to_candidate(claim_value)
            for claim_value in claim_values
            for rule in self.rules
            if rule.matches(claim_value)
        ]


@dataclass(frozen=True)
class ProjectionMappingSpec:
    """Legacy query projecting org/role objects directly."""

    query: str
    dialect: QueryDialect = QueryDialect.JMESPATH

    kind = "projection"
    configured = True

    @property
    def config_option(self) -> str:
        return self.query

    def candidates(self, document: Any) -> list[Candidate]:
        result = evaluate(self.query, document, self.dialect)
        return [self._decode(item) for item in object_values(result)]

    def _decode(self, item: Any) -> Candidate:
        source = json.dumps(item, sort_keys=True)
        try:
            projected = ProjectedOrgRole.model_validate(item)
        except ValidationError:
            return Candidate(
                claim_value="",
                org_id=0,
                org_name="",
                role="",
                rule_text=self.query,
                source=source,
                malformed=True,
            )
        return Candidate(
            claim_value="",
            org_id=projected.org_id,
            org_name=projected.org_name,
            role=projected.role,
            rule_text=self.query,
            source=source,
        )


MappingSpec = UnconfiguredMappingSpec | ClaimsMappingSpec | ProjectionMappingSpec

EMPTY_SPEC = UnconfiguredMappingSpec()


# --- Parsing ---


def parse_org_mapping(raw: str | list[str]) -> tuple[MappingRule, ...]:
    """Parse ``claimValue:orgIdOrName:Role`` rules.

    Args:
        raw: Whitespace-delimited rules, or a list of such strings.

    Returns:
        Rules in configuration order. Order matters: later rules win when
        several resolve to the same organization.

    Raises:
        OrgMappingConfigError: a rule does not have exactly three fields.
    """
    entries = [raw] if isinstance(raw, str) else raw
    rules: list[MappingRule] = []
    for entry in entries:
        for token in entry.split():
            fields = token.split(":")
            if len(fields) != 3:
                raise OrgMappingConfigError(
                    f"invalid org mapping {token!r}: expected claimValue:orgIdOrName:Role"
                )
            match_value, org_identifier, role = fields
            rules.append(
                MappingRule(
                    match_value=match_value,
                    org_identifier=org_identifier,
                    role=role,
                    raw=token,
                )
            )
    return tuple(rules)


def build_mapping_spec(config: OrgMappingConfig) -> MappingSpec:
    """Select and build the mapping spec for a provider.

    Raises:
        OrgMappingConfigError: the mapping is malformed, or the provider mixes
            both dialects, or has rules without a path to evaluate them on.
    """
    rules = parse_org_mapping(config.org_mapping)

    if config.org_roles_attribute_path and (rules or config.org_attribute_path):
        raise OrgMappingConfigError(
            f"provider {config.name!r}: org_roles_attribute_path cannot be combined "
            "with org_attribute_path or org_mapping"
        )

    if rules or config.org_attribute_path:
        if not config.org_attribute_path:
            raise OrgMappingConfigError(
                f"provider {config.name!r}: org_mapping requires org_attribute_path"
            )
        return ClaimsMappingSpec(
            path=config.org_attribute_path,
            rules=rules,
            dialect=config.path_dialect,
        )

    if config.org_roles_attribute_path:
        return ProjectionMappingSpec(
            query=config.org_roles_attribute_path,
            dialect=config.path_dialect,
        )

    return EMPTY_SPEC
