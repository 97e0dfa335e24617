# pagepub/services/access.py
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple

from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from pagepub.domain.errors import AccessDeniedError


class AccessPolicy(Protocol):
    def assert_can_preview(self, page_id: str) -> None:
        """Raise AccessDeniedError unless the caller may see the page's draft."""
        ...


def optional_identity() -> Tuple[Optional[str], Dict[str, Any]]:
    """
    (identity, claims) of the caller, or (None, {}) for guests.

    A missing, expired or malformed token counts as a guest.
    """
    try:
        if verify_jwt_in_request(optional=True) is None:
            return None, {}
    except (JWTExtendedException, PyJWTError):
        return None, {}
    return get_jwt_identity(), get_jwt()


class RoleAccessPolicy:
    """Draft access for callers whose JWT carries one of the preview roles."""

    def __init__(self, roles: Iterable[str]):
        self.roles = frozenset(roles)

    def assert_can_preview(self, page_id: str) -> None:
        _, claims = optional_identity()
        if claims.get("role") not in self.roles:
            raise AccessDeniedError(f"Caller may not preview page {page_id}")
