"""
Invoice endpoints.

Any authenticated user may read invoices; writes need the matching
``invoices`` permission. Creation re-checks the VAT arithmetic and every
line item before the service sees the payload.
"""

import structlog
from flask import Blueprint, g, request

from dealership.auth.decorators import require_authentication, require_permission
from dealership.blueprints.schemas import (
    InvoiceFilterSchema,
    InvoiceStatisticsSchema,
    load_query,
    parse_pagination,
)
from dealership.business.validators import validate_create_invoice, validate_update_invoice
from dealership.extensions import get_services
from dealership.utils.request import parse_json_body, require_path_id
from dealership.utils.response import PUBLIC_DETAIL_CACHE, ensure_valid, outcome_response

logger = structlog.get_logger(__name__)

invoices_bp = Blueprint('invoices', __name__, url_prefix='/api/invoices')


def invoice_service():
    return get_services().invoices


@invoices_bp.route('', methods=['GET'])
@require_authentication()
def list_invoices():
    pagination = parse_pagination(request.args)
    filters = load_query(InvoiceFilterSchema, request.args)

    outcome = invoice_service().get_all(filters, page=pagination['page'], limit=pagination['limit'])
    return outcome_response(outcome, 'Failed to fetch invoices', 'invoice_list')


@invoices_bp.route('', methods=['POST'])
@require_permission('invoices', 'create')
def create_invoice():
    payload = parse_json_body()
    ensure_valid(validate_create_invoice(payload), 'invoice')

    outcome = invoice_service().create(payload, user_id=g.current_user.id)
    if outcome.success:
        logger.info(
            "Invoice created",
            invoice_id=outcome.data['id'],
            invoice_number=outcome.data.get('invoice_number'),
            user_id=g.current_user.id,
        )
    return outcome_response(outcome, 'Failed to create invoice', 'invoice_create', status_code=201)


@invoices_bp.route('/stats', methods=['GET'])
@require_authentication()
def invoice_statistics():
    filters = load_query(InvoiceStatisticsSchema, request.args)
    outcome = invoice_service().get_statistics(filters)
    return outcome_response(
        outcome,
        'Failed to fetch invoice statistics',
        'invoice_statistics',
        cache_control=PUBLIC_DETAIL_CACHE,
    )


@invoices_bp.route('/<invoice_id>', methods=['GET'])
@require_authentication()
def get_invoice(invoice_id: str):
    invoice_id = require_path_id(invoice_id, 'Invoice')
    outcome = invoice_service().get_by_id(invoice_id)
    return outcome_response(outcome, 'Failed to fetch invoice', 'invoice_get')


@invoices_bp.route('/<invoice_id>', methods=['PUT'])
@require_permission('invoices', 'update')
def update_invoice(invoice_id: str):
    invoice_id = require_path_id(invoice_id, 'Invoice')
    payload = parse_json_body()
    ensure_valid(validate_update_invoice(payload), 'invoice')

    outcome = invoice_service().update(invoice_id, payload, user_id=g.current_user.id)
    return outcome_response(outcome, 'Failed to update invoice', 'invoice_update')


@invoices_bp.route('/<invoice_id>', methods=['DELETE'])
@require_permission('invoices', 'delete')
def delete_invoice(invoice_id: str):
    invoice_id = require_path_id(invoice_id, 'Invoice')
    outcome = invoice_service().delete(invoice_id)
    return outcome_response(
        outcome,
        'Failed to delete invoice',
        'invoice_delete',
        message='Invoice deleted successfully',
    )


__all__ = ['invoices_bp']
