"""
Payment endpoints.

Payments are finance data: reading needs ``payments.read`` and recording,
correcting or deleting a payment needs the matching write permission.
Recording a payment re-derives the status of the invoice it belongs to.
"""

import structlog
from flask import Blueprint, g, request

from dealership.auth.decorators import require_permission
from dealership.blueprints.schemas import (
    PaymentFilterSchema,
    PaymentStatisticsSchema,
    load_query,
    parse_pagination,
)
from dealership.business.validators import validate_create_payment, validate_update_payment
from dealership.extensions import get_services
from dealership.utils.request import parse_json_body, require_path_id
from dealership.utils.response import PUBLIC_DETAIL_CACHE, ensure_valid, outcome_response

logger = structlog.get_logger(__name__)

payments_bp = Blueprint('payments', __name__, url_prefix='/api/payments')


def payment_service():
    return get_services().payments


@payments_bp.route('', methods=['GET'])
@require_permission('payments', 'read')
def list_payments():
    pagination = parse_pagination(request.args)
    filters = load_query(PaymentFilterSchema, request.args)

    outcome = payment_service().get_all(filters, page=pagination['page'], limit=pagination['limit'])
    return outcome_response(outcome, 'Failed to fetch payments', 'payment_list')


@payments_bp.route('', methods=['POST'])
@require_permission('payments', 'create')
def create_payment():
    payload = parse_json_body()
    ensure_valid(validate_create_payment(payload), 'payment')

    outcome = payment_service().create(payload, user_id=g.current_user.id)
    if outcome.success:
        logger.info(
            "Payment created",
            payment_id=outcome.data['id'],
            invoice_id=payload.get('invoice_id'),
            user_id=g.current_user.id,
        )
    return outcome_response(outcome, 'Failed to create payment', 'payment_create', status_code=201)


@payments_bp.route('/stats', methods=['GET'])
@require_permission('payments', 'read')
def payment_statistics():
    """Payment count, totals per currency, and counts and totals per method."""
    filters = load_query(PaymentStatisticsSchema, request.args)
    outcome = payment_service().get_statistics(filters)
    return outcome_response(
        outcome,
        'Failed to fetch payment statistics',
        'payment_statistics',
        cache_control=PUBLIC_DETAIL_CACHE,
    )


@payments_bp.route('/invoices/<invoice_id>/summary', methods=['GET'])
@require_permission('payments', 'read')
def invoice_payment_summary(invoice_id: str):
    invoice_id = require_path_id(invoice_id, 'Invoice')
    outcome = payment_service().get_invoice_summary(invoice_id)
    return outcome_response(outcome, 'Failed to fetch invoice payment summary', 'payment_invoice_summary')


@payments_bp.route('/<payment_id>', methods=['GET'])
@require_permission('payments', 'read')
def get_payment(payment_id: str):
    payment_id = require_path_id(payment_id, 'Payment')
    outcome = payment_service().get_by_id(payment_id)
    return outcome_response(outcome, 'Failed to fetch payment', 'payment_get')


@payments_bp.route('/<payment_id>', methods=['PUT'])
@require_permission('payments', 'update')
def update_payment(payment_id: str):
    payment_id = require_path_id(payment_id, 'Payment')
    payload = parse_json_body()
    ensure_valid(validate_update_payment(payload), 'payment')

    outcome = payment_service().update(payment_id, payload, user_id=g.current_user.id)
    return outcome_response(outcome, 'Failed to update payment', 'payment_update')


@payments_bp.route('/<payment_id>', methods=['DELETE'])
@require_permission('payments', 'delete')
def delete_payment(payment_id: str):
    payment_id = require_path_id(payment_id, 'Payment')
    outcome = payment_service().delete(payment_id)
    return outcome_response(
        outcome,
        'Failed to delete payment',
        'payment_delete',
        message='Payment deleted successfully',
    )


__all__ = ['payments_bp']
