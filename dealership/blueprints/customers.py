"""Customer endpoints."""

import structlog
from flask import Blueprint, g, request

from dealership.auth.decorators import require_authentication, require_permission
from dealership.blueprints.schemas import CustomerFilterSchema, load_query, parse_pagination
from dealership.business.validators import validate_create_customer, validate_update_customer
from dealership.extensions import get_services
from dealership.utils.request import parse_json_body, require_path_id
from dealership.utils.response import PUBLIC_DETAIL_CACHE, ensure_valid, outcome_response

logger = structlog.get_logger(__name__)

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')


def customer_service():
    return get_services().customers


@customers_bp.route('', methods=['GET'])
@require_authentication()
def list_customers():
    pagination = parse_pagination(request.args)
    filters = load_query(CustomerFilterSchema, request.args)

    outcome = customer_service().get_all(filters, page=pagination['page'], limit=pagination['limit'])
    return outcome_response(outcome, 'Failed to fetch customers', 'customer_list')


@customers_bp.route('', methods=['POST'])
@require_permission('customers', 'create')
def create_customer():
    payload = parse_json_body()
    ensure_valid(validate_create_customer(payload), 'customer')

    outcome = customer_service().create(payload, user_id=g.current_user.id)
    if outcome.success:
        logger.info("Customer created", customer_id=outcome.data['id'], user_id=g.current_user.id)
    return outcome_response(outcome, 'Failed to create customer', 'customer_create', status_code=201)


@customers_bp.route('/stats', methods=['GET'])
@require_authentication()
def customer_statistics():
    outcome = customer_service().get_statistics()
    return outcome_response(
        outcome,
        'Failed to fetch customer statistics',
        'customer_statistics',
        cache_control=PUBLIC_DETAIL_CACHE,
    )


@customers_bp.route('/<customer_id>', methods=['GET'])
@require_authentication()
def get_customer(customer_id: str):
    customer_id = require_path_id(customer_id, 'Customer')
    outcome = customer_service().get_by_id(customer_id)
    return outcome_response(outcome, 'Failed to fetch customer', 'customer_get')


@customers_bp.route('/<customer_id>', methods=['PUT'])
@require_permission('customers', 'update')
def update_customer(customer_id: str):
    customer_id = require_path_id(customer_id, 'Customer')
    payload = parse_json_body()
    ensure_valid(validate_update_customer(payload), 'customer')

    outcome = customer_service().update(customer_id, payload, user_id=g.current_user.id)
    return outcome_response(outcome, 'Failed to update customer', 'customer_update')


@customers_bp.route('/<customer_id>', methods=['DELETE'])
@require_permission('customers', 'delete')
def delete_customer(customer_id: str):
    customer_id = require_path_id(customer_id, 'Customer')
    outcome = customer_service().delete(customer_id)
    return outcome_response(
        outcome,
        'Failed to delete customer',
        'customer_delete',
        message='Customer deleted successfully',
    )


__all__ = ['customers_bp']
