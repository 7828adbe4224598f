"""Caller authorization for the batch endpoints."""

from typing import Optional

from fastapi import Depends, Header

from api.dependencies import PipelineServices, get_services

ADMIN_ROLE = "admin"


class AuthorizationError(Exception):
    """Caller is not authenticated or lacks the admin role."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


def _bearer_token(authorization: str) -> str:
    return authorization.replace("Bearer ", "", 1).strip()


def check_admin(services: PipelineServices, authorization: str) -> str:
    """Return the caller's user id when the token belongs to an administrator."""
    token = _bearer_token(authorization)
    user_id = services.db.get_user_id_for_token(token) if token else None
    if not user_id:
        raise AuthorizationError(401, "Unauthorized")
    if not services.db.user_has_role(user_id, ADMIN_ROLE):
        raise AuthorizationError(403, "Admin access required")
    return user_id


def require_admin(
    authorization: Optional[str] = Header(None),
    services: PipelineServices = Depends(get_services),
) -> str:
    if not authorization:
        raise AuthorizationError(401, "No authorization header")
    return check_admin(services, authorization)


def optional_admin(
    authorization: Optional[str] = Header(None),
    services: PipelineServices = Depends(get_services),
) -> Optional[str]:
    """Anonymous callers pass; a supplied token must belong to an administrator."""
    if not authorization:
        return None
    return check_admin(services, authorization)
