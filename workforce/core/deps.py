"""
Dependencies and guards for FastAPI endpoints
"""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from workforce.core.errors import AuthenticationError, AuthorizationError
from workforce.core.security import decode_token
from workforce.db.session import get_db
from workforce.models.user import Role, User
from workforce.services.permission_service import ModuleAction, enforce
from workforce.services.scope_service import TenantScope, get_current_identity

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_scope(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TenantScope:
    """
    Verify the bearer token and build the caller's scope from its claims.

    Missing, expired and tampered tokens all raise AuthenticationError.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authorization token required")
    payload = decode_token(credentials.credentials)
    return TenantScope.from_claims(payload)


def get_current_user(
    scope: TenantScope = Depends(get_current_scope),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller's User row from the token scope"""
    return get_current_identity(db, scope)


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role-based access control

    Usage:
        @router.get("/company-only")
        async def endpoint(scope: TenantScope = Depends(require_roles(Role.COMPANY_ADMIN))):
            ...
    """
    def role_checker(scope: TenantScope = Depends(get_current_scope)) -> TenantScope:
        if scope.role not in allowed_roles:
            logger.info("Denied role %s; required one of %s", scope.role.value, [r.value for r in allowed_roles])
            raise AuthorizationError()
        return scope
    return role_checker


def require_tenant_roles(*allowed_roles: Role):
    """Like require_roles, but the token must also carry a company."""
    def tenant_checker(scope: TenantScope = Depends(require_roles(*allowed_roles))) -> TenantScope:
        if scope.company_id is None:
            raise AuthorizationError()
        return scope
    return tenant_checker


def require_module(module_name: str, action: ModuleAction = ModuleAction.VIEW):
    """
    Dependency factory gating a route behind a company module.

    Usage:
        @router.get("")
        def list_items(scope: TenantScope = Depends(require_module("inventory"))):
            ...
    """
    def module_checker(
        scope: TenantScope = Depends(get_current_scope),
        db: Session = Depends(get_db),
    ) -> TenantScope:
        enforce(db, scope, module_name, action)
        return scope
    return module_checker
