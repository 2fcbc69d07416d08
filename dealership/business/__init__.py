"""
Business layer: typed models, consistency checks, entity validators, status
display rules, statistics and the in-memory reference services.
"""

from dealership.business.models import (
    CurrentUser,
    LineItem,
    Pagination,
    ServiceOutcome,
    StatusHistoryEntry,
    UserRole,
)
from dealership.business.services import Services, create_in_memory_services
from dealership.business.validators import (
    validate_create_customer,
    validate_create_invoice,
    validate_create_payment,
    validate_create_vehicle,
    validate_status_update,
    validate_update_customer,
    validate_update_invoice,
    validate_update_payment,
    validate_update_vehicle,
)

__all__ = [
    'CurrentUser',
    'LineItem',
    'Pagination',
    'ServiceOutcome',
    'StatusHistoryEntry',
    'UserRole',
    'Services',
    'create_in_memory_services',
    'validate_create_customer',
    'validate_create_invoice',
    'validate_create_payment',
    'validate_create_vehicle',
    'validate_status_update',
    'validate_update_customer',
    'validate_update_invoice',
    'validate_update_payment',
    'validate_update_vehicle',
]
