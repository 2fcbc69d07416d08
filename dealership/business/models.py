"""
Typed models shared by the service layer and the HTTP layer.

Pydantic models describe what crosses the service boundary: the
``ServiceOutcome`` envelope every service call returns, pagination metadata,
the authenticated user, and the typed records built from payloads once they
have passed validation.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from dealership.utils.exceptions import ErrorKind


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    MANAGER = "manager"
    INVENTORY_MANAGER = "inventory_manager"
    FINANCE_MANAGER = "finance_manager"
    SALES_AGENT = "sales_agent"
    VIEWER = "viewer"


class Currency(str, Enum):
    AED = "AED"
    USD = "USD"
    CAD = "CAD"


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> 'Pagination':
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


class ServiceOutcome(BaseModel):
    """
    Result envelope returned by every service call.

    ``error`` is free text written for humans. ``error_kind`` is the
    structured classification; outcomes from services that do not set it are
    classified by matching phrases in ``error``.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    pagination: Optional[Pagination] = None

    @classmethod
    def ok(cls, data: Any = None, pagination: Optional[Pagination] = None) -> 'ServiceOutcome':
        return cls(success=True, data=data, pagination=pagination)

    @classmethod
    def fail(cls, error: str, kind: Optional[ErrorKind] = None) -> 'ServiceOutcome':
        return cls(success=False, error=error, error_kind=kind)


class CurrentUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    role: UserRole
    full_name: Optional[str] = None


class LineItem(BaseModel):
    description: str
    quantity: float
    unit_price: float
    total: float
    vat_rate: Optional[float] = None


class StatusHistoryEntry(BaseModel):
    id: str
    vehicle_id: str
    status: str
    notes: Optional[str] = None
    changed_by: Optional[str] = None
    changed_at: datetime = Field(default_factory=utcnow)


__all__ = [
    'utcnow',
    'UserRole',
    'Currency',
    'Pagination',
    'ServiceOutcome',
    'CurrentUser',
    'LineItem',
    'StatusHistoryEntry',
]
