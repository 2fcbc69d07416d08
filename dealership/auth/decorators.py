"""
Route decorators for authentication and authorization.

The auth provider is looked up on the application (``create_app`` installs it)
rather than imported, so tests and alternative deployments can inject their
own. The resolved user is stored on ``flask.g.current_user``.
"""

from functools import wraps
from typing import Any, Callable, Optional, TypeVar

import structlog
from flask import g, request

from dealership.auth.permissions import has_permission
from dealership.business.models import CurrentUser
from dealership.extensions import get_extension
from dealership.utils.exceptions import AuthenticationError, AuthorizationError

logger = structlog.get_logger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def get_auth_provider():
    return get_extension().auth_provider


def resolve_current_user() -> Optional[CurrentUser]:
    """Resolve (once per request) and cache the current user on ``g``."""
    if 'current_user' not in g:
        g.current_user = get_auth_provider().get_current_user(request)
    return g.current_user


def require_authentication() -> Callable[[F], F]:
    """
    Reject the request with 401 unless a current user can be resolved.

    Example:
        @invoices_bp.route('', methods=['GET'])
        @require_authentication()
        def list_invoices():
            ...
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            user = resolve_current_user()
            if user is None:
                logger.info("Authentication required", endpoint=request.endpoint)
                raise AuthenticationError()
            return func(*args, **kwargs)
        return wrapper
    return decorator


def require_permission(resource: str, action: str) -> Callable[[F], F]:
    """
    Reject with 401 when unauthenticated and 403 when the user's role does not
    grant ``action`` on ``resource``.
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            user = resolve_current_user()
            if user is None:
                logger.info("Authentication required", endpoint=request.endpoint)
                raise AuthenticationError()

            if not has_permission(user.role, resource, action):
                logger.warning(
                    "Permission denied",
                    user_id=user.id,
                    role=user.role.value,
                    resource=resource,
                    action=action,
                    endpoint=request.endpoint,
                )
                raise AuthorizationError()

            return func(*args, **kwargs)
        return wrapper
    return decorator


__all__ = [
    'get_auth_provider',
    'resolve_current_user',
    'require_authentication',
    'require_permission',
]
