"""Organization role vocabulary.

Roles are a closed set. ``None`` is the distinguished no-access role: a user
mapped to it is a member of the organization without any permissions.
"""

from enum import StrEnum

from orgroles.auth.errors import InvalidRoleError


class RoleType(StrEnum):
    """Role a user holds within an organization."""

    NONE = "None"
    VIEWER = "Viewer"
    EDITOR = "Editor"
    ADMIN = "Admin"

    @classmethod
    def is_valid(cls, text: str) -> bool:
        """Check if text names a role (case-sensitive)."""
        return text in ROLE_NAMES


ROLE_NAMES: frozenset[str] = frozenset(role.value for role in RoleType)


def parse_role(text: str) -> RoleType:
    """Validate a role token.

    Raises:
        InvalidRoleError: text is not one of the role values. Matching is
            case-sensitive, so "editor" is rejected.
    """
    if not isinstance(text, str) or not RoleType.is_valid(text):
        raise InvalidRoleError(str(text))
    return RoleType(text)
