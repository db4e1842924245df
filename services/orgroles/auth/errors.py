"""Exceptions raised while resolving organization roles from IDP claims.

Fatal errors abort a resolution call. ``OrgNotFoundError`` and
``IncorrectMappingError`` are recoverable: the orchestrator downgrades them
to skip warnings and continues with the next candidate.
"""


class OrgRoleError(Exception):
    """Base exception for org role resolution."""


class QuerySyntaxError(OrgRoleError):
    """Raised when a claims query does not parse."""

    def __init__(self, query: str, diagnostic: str) -> None:
        self.query = query
        self.diagnostic = diagnostic
        super().__init__(f"SyntaxError: {diagnostic}")


class QueryEvaluationError(OrgRoleError):
    """Raised when a valid query fails against a document (e.g. a function type error)."""


class UserInfoSearchError(OrgRoleError):
    """Raised when the userinfo document cannot be searched."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(
            f'failed to search user info JSON response with provided path: "{path}": {reason}'
        )


class OrgMappingConfigError(OrgRoleError):
    """Raised when operator mapping configuration is malformed."""


class InvalidRoleError(OrgRoleError):
    """Raised when a role token is not a recognized role."""

    def __init__(self, role: str) -> None:
        self.role = role
        super().__init__(f"invalid role type: {role}")


class OrgNotFoundError(OrgRoleError):
    """Raised when an organization does not exist in the registry."""

    def __init__(self, identifier: str | int) -> None:
        self.identifier = identifier
        super().__init__(f"organization not found: {identifier}")


class IncorrectMappingError(OrgRoleError):
    """Raised when a candidate names neither an org id nor an org name."""


class OrgRegistryError(OrgRoleError):
    """Raised when the organization registry itself fails (transport, storage)."""


class ResolutionCancelledError(OrgRoleError):
    """Raised when the caller's deadline expires before a registry lookup."""
