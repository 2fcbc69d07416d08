"""
Query-string schemas for list and statistics endpoints.

Query parameters are parsed leniently: a numeric parameter takes the leading
number of its value (``"12abc"`` is 12), unparsable values are dropped rather
than rejected, and boolean flags are true only for the literal ``"true"``.
Pagination always resolves to a usable page and limit.
"""

import math
import re
from typing import Any, Dict, Mapping

from marshmallow import EXCLUDE, Schema, fields, post_load

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

LEADING_INTEGER_REGEX = re.compile(r'\s*([+-]?[0-9]+)')
LEADING_FLOAT_REGEX = re.compile(
    r'\s*([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)'
)
DATE_PREFIX_REGEX = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}')


class LeadingInteger(fields.Field):
    """Integer taken from the start of the value; ``None`` when there is none."""

    def _deserialize(self, value, attr, data, **kwargs):
        match = LEADING_INTEGER_REGEX.match(str(value))
        if not match:
            return None
        try:
            return int(match.group(1))
        except ValueError:
            # Beyond the interpreter's integer string conversion limit.
            return None


class LeadingFloat(fields.Field):
    def _deserialize(self, value, attr, data, **kwargs):
        match = LEADING_FLOAT_REGEX.match(str(value))
        if not match:
            return None
        number = float(match.group(1))
        # Overlong literals such as "1e999" parse as infinity.
        return number if math.isfinite(number) else None


class QueryFlag(fields.Field):
    """``"true"`` is True, any other non-empty value is False, empty is unset."""

    def _deserialize(self, value, attr, data, **kwargs):
        if value == '':
            return None
        return value == 'true'


class DateOnly(fields.Field):
    """Keep the ``YYYY-MM-DD`` part of a date or timestamp parameter."""

    def _deserialize(self, value, attr, data, **kwargs):
        match = DATE_PREFIX_REGEX.match(str(value))
        return match.group(0) if match else None


class QuerySchema(Schema):
    """Base for filter schemas: unknown parameters are ignored, blanks dropped."""

    class Meta:
        unknown = EXCLUDE

    @post_load
    def drop_blank(self, data: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        return {key: value for key, value in data.items() if value is not None and value != ''}


class PaginationSchema(Schema):
    """Schema for ``page`` and ``limit`` with defaults and clamping."""

    class Meta:
        unknown = EXCLUDE

    page = LeadingInteger(load_default=None, metadata={'description': 'Page number starting from 1'})
    limit = LeadingInteger(load_default=None, metadata={'description': 'Items per page (max 100)'})

    @post_load
    def clamp(self, data: Dict[str, Any], **kwargs) -> Dict[str, int]:
        # Zero and unparsable values fall back to the defaults.
        page = data.get('page') or DEFAULT_PAGE
        limit = data.get('limit') or DEFAULT_LIMIT
        return {
            'page': max(1, page),
            'limit': min(MAX_LIMIT, max(1, limit)),
        }


class VehicleFilterSchema(QuerySchema):
    search = fields.String()
    status = fields.String()
    make = fields.String()
    model = fields.String()
    auction_house = fields.String()
    is_public = QueryFlag()
    year_min = LeadingInteger()
    year_max = LeadingInteger()
    price_min = LeadingFloat()
    price_max = LeadingFloat()


class InvoiceFilterSchema(QuerySchema):
    search = fields.String()
    status = fields.String()
    customer_id = fields.String()
    vehicle_id = fields.String()
    currency = fields.String()
    created_from = DateOnly()
    created_to = DateOnly()
    due_from = DateOnly()
    due_to = DateOnly()
    overdue_only = QueryFlag()


class CustomerFilterSchema(QuerySchema):
    search = fields.String()
    city = fields.String()
    country = fields.String()
    marketing_consent = QueryFlag()
    created_from = DateOnly()
    created_to = DateOnly()


class PaymentFilterSchema(QuerySchema):
    search = fields.String()
    invoice_id = fields.String()
    payment_method = fields.String()
    currency = fields.String()
    date_from = DateOnly()
    date_to = DateOnly()
    amount_from = LeadingFloat()
    amount_to = LeadingFloat()


class InvoiceStatisticsSchema(QuerySchema):
    created_from = DateOnly()
    created_to = DateOnly()


class PaymentStatisticsSchema(QuerySchema):
    date_from = DateOnly()
    date_to = DateOnly()


class ExpenseStatisticsSchema(QuerySchema):
    date_from = DateOnly()
    date_to = DateOnly()
    vehicle_id = fields.String()


def load_query(schema_class, args: Mapping[str, Any]) -> Dict[str, Any]:
    """Load the first value of each query parameter through ``schema_class``."""
    to_dict = getattr(args, 'to_dict', None)
    params = to_dict() if callable(to_dict) else dict(args)
    return schema_class().load(params)


def parse_pagination(args: Mapping[str, Any]) -> Dict[str, int]:
    return load_query(PaginationSchema, args)


__all__ = [
    'DEFAULT_PAGE',
    'DEFAULT_LIMIT',
    'MAX_LIMIT',
    'LeadingInteger',
    'LeadingFloat',
    'QueryFlag',
    'DateOnly',
    'PaginationSchema',
    'VehicleFilterSchema',
    'InvoiceFilterSchema',
    'CustomerFilterSchema',
    'PaymentFilterSchema',
    'InvoiceStatisticsSchema',
    'ExpenseStatisticsSchema',
    'PaymentStatisticsSchema',
    'load_query',
    'parse_pagination',
]
