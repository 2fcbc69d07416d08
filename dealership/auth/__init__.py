"""Authentication (JWT bearer tokens) and role-based authorization."""

from dealership.auth.authentication import JWTAuthProvider, extract_bearer_token
from dealership.auth.decorators import require_authentication, require_permission
from dealership.auth.permissions import ROLE_PERMISSIONS, has_permission

__all__ = [
    'JWTAuthProvider',
    'extract_bearer_token',
    'require_authentication',
    'require_permission',
    'ROLE_PERMISSIONS',
    'has_permission',
]
