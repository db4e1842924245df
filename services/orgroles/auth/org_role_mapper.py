"""Org role resolution from IDP userinfo.

Turns a raw userinfo JSON document into a mapping of org id to role:

1. Evaluate the provider's claims path (or legacy projection query).
2. Expand claim values through the mapping rules into candidates.
3. Validate each candidate's role and resolve its organization.
4. Merge into the result; later candidates override earlier ones for the
   same organization.

An unknown organization or a malformed candidate is skipped with a warning.
A query that does not parse, an invalid role, a registry failure, or an
expired deadline aborts the whole call.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from orgroles.auth.errors import (
    IncorrectMappingError,
    OrgNotFoundError,
    QueryEvaluationError,
    QuerySyntaxError,
    ResolutionCancelledError,
    UserInfoSearchError,
)
from orgroles.auth.org_mapping import Candidate, MappingSpec
from orgroles.auth.org_resolver import OrgRegistry, resolve_org_id
from orgroles.auth.roles import RoleType, parse_role
from orgroles.logging_config import get_logger


class SkipReason(StrEnum):
    """Why a candidate was left out of the result."""

    UNKNOWN_ORGANIZATION = "UnknownOrganization"
    INCORRECT_MAPPING = "IncorrectMapping"


_SKIP_MESSAGES: dict[SkipReason, str] = {
    SkipReason.UNKNOWN_ORGANIZATION: "Unknown organization. Skipping.",
    SkipReason.INCORRECT_MAPPING: "Incorrect mapping. Skipping.",
}


@dataclass(frozen=True)
class SkipWarning:
    """A candidate skipped during resolution."""

    reason: SkipReason
    rule_text: str
    candidate: Candidate


@dataclass
class Resolution:
    """Result of one resolution call."""

    org_roles: dict[int, RoleType] = field(default_factory=dict)
    warnings: list[SkipWarning] = field(default_factory=list)


class OrgRoleMapper:
    """Resolves org roles for one provider's mapping spec.

    The mapping spec is never mutated, so a single mapper can serve concurrent
    logins. Registry and logger are injected so that calls are independent
    of global state.
    """

    def __init__(
        self,
        spec: MappingSpec,
        registry: OrgRegistry,
        logger: Any | None = None,
        parallel_lookups: bool = False,
    ) -> None:
        self._spec = spec
        self._registry = registry
        self._logger = logger if logger is not None else get_logger(__name__)
        self._parallel_lookups = parallel_lookups

    @property
    def spec(self) -> MappingSpec:
        return self._spec

    async def map_org_roles(
        self, raw_json: bytes | str, *, deadline: float | None = None
    ) -> dict[int, RoleType]:
        """Resolve and return only the org id to role mapping."""
        resolution = await self.resolve(raw_json, deadline=deadline)
        return resolution.org_roles

    async def resolve(self, raw_json: bytes | str, *, deadline: float | None = None) -> Resolution:
        """Resolve org roles from a userinfo document.

        Args:
            raw_json: Userinfo response body.
            deadline: Optional time.monotonic() value. Checked before every
                registry lookup.

        Returns:
            Resolution with org roles and one warning per skipped candidate.

        Raises:
            UserInfoSearchError: the document is not JSON or the query fails.
            InvalidRoleError: a candidate's role is not a valid role.
            OrgRegistryError: the registry failed.
            ResolutionCancelledError: the deadline expired.
        """
        resolution = Resolution()
        if not self._spec.configured:
            return resolution

        candidates = self._expand(raw_json)

        if self._parallel_lookups:
            # Validate every role before starting any lookup, then merge in
            # candidate order regardless of completion order.
            roles = [None if c.malformed else parse_role(c.role) for c in candidates]
            tasks = [
                asyncio.ensure_future(self._try_resolve(candidate, deadline))
                for candidate, role in zip(candidates, roles)
                if role is not None
            ]
            try:
                outcomes = await asyncio.gather(*tasks)
            except BaseException:
                # First failure aborts the call; stop the remaining lookups.
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            pending = iter(outcomes)
            for candidate, role in zip(candidates, roles):
                if role is None:
                    self._skip(resolution, SkipReason.INCORRECT_MAPPING, candidate)
                else:
                    self._apply(resolution, candidate, role, next(pending))
            return resolution

        for candidate in candidates:
            if candidate.malformed:
                self._skip(resolution, SkipReason.INCORRECT_MAPPING, candidate)
                continue
            role = parse_role(candidate.role)
            outcome = await self._try_resolve(candidate, deadline)
            self._apply(resolution, candidate, role, outcome)
        return resolution

    def _expand(self, raw_json: bytes | str) -> list[Candidate]:
        config_option = self._spec.config_option
        try:
            document = json.loads(raw_json)
        except (ValueError, RecursionError) as e:
            raise UserInfoSearchError(config_option, f"invalid JSON: {e}") from e

        try:
            return self._spec.candidates(document)
        except (QuerySyntaxError, QueryEvaluationError) as e:
            raise UserInfoSearchError(config_option, str(e)) from e
        except RecursionError as e:
            raise UserInfoSearchError(config_option, "document nested too deeply") from e

    async def _try_resolve(self, candidate: Candidate, deadline: float | None) -> int | SkipReason:
        if deadline is not None and time.monotonic() >= deadline:
            raise ResolutionCancelledError(
                f"deadline expired before resolving organization for {candidate}"
            )
        try:
            return await resolve_org_id(self._registry, candidate)
        except IncorrectMappingError:
            return SkipReason.INCORRECT_MAPPING
        except OrgNotFoundError:
            return SkipReason.UNKNOWN_ORGANIZATION

    def _apply(
        self,
        resolution: Resolution,
        candidate: Candidate,
        role: RoleType,
        outcome: int | SkipReason,
    ) -> None:
        if isinstance(outcome, SkipReason):
            self._skip(resolution, outcome, candidate)
            return

        resolution.org_roles[outcome] = role
        self._logger.debug(
            "Org mapping matched",
            org_id=outcome,
            role=str(role),
            config_option=candidate.rule_text,
        )

    def _skip(self, resolution: Resolution, reason: SkipReason, candidate: Candidate) -> None:
        resolution.warnings.append(
            SkipWarning(reason=reason, rule_text=candidate.rule_text, candidate=candidate)
        )
        self._logger.warning(
            _SKIP_MESSAGES[reason],
            config_option=candidate.rule_text,
            mapping=str(candidate),
        )
