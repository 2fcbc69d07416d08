"""
Role-based permission matrix.

Permissions are ``(resource, action)`` pairs. A role either grants an action
on a resource or it does not; there is no ownership or per-record override.
"""

from typing import Dict, FrozenSet, Union

from dealership.business.models import UserRole

CRUD = frozenset({'create', 'read', 'update', 'delete'})
READ = frozenset({'read'})
READ_UPDATE = frozenset({'read', 'update'})

ROLE_PERMISSIONS: Dict[UserRole, Dict[str, FrozenSet[str]]] = {
    UserRole.SUPER_ADMIN: {
        'vehicles': CRUD,
        'customers': CRUD,
        'invoices': CRUD,
        'expenses': CRUD,
        'payments': CRUD,
        'settings': READ_UPDATE,
        'users': CRUD,
        'system': frozenset({'admin'}),
        'backups': frozenset({'create', 'read'}),
        'logs': READ,
    },
    UserRole.MANAGER: {
        'vehicles': CRUD,
        'customers': CRUD,
        'invoices': CRUD,
        'expenses': CRUD,
        'payments': READ,
        'settings': READ_UPDATE,
    },
    UserRole.INVENTORY_MANAGER: {
        'vehicles': CRUD,
        'customers': READ_UPDATE,
        'payments': READ,
        'settings': READ,
    },
    UserRole.FINANCE_MANAGER: {
        'vehicles': READ_UPDATE,
        'customers': READ_UPDATE,
        'invoices': CRUD,
        'expenses': CRUD,
        'payments': CRUD,
        'settings': READ,
    },
    UserRole.SALES_AGENT: {
        'vehicles': READ_UPDATE,
        'customers': frozenset({'create', 'read', 'update'}),
        'invoices': READ,
        'settings': READ,
    },
    UserRole.VIEWER: {
        'vehicles': READ,
        'customers': READ,
        'invoices': READ,
        'settings': READ,
    },
}


def has_permission(role: Union[UserRole, str, None], resource: str, action: str) -> bool:
    """Unknown roles have no permissions."""
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return action in ROLE_PERMISSIONS.get(role, {}).get(resource, frozenset())


__all__ = ['ROLE_PERMISSIONS', 'has_permission']
