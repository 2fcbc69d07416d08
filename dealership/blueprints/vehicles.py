"""
Vehicle inventory endpoints.

Listing and detail are public storefront reads and carry cache headers; every
write, the status timeline and the statistics require a permission on the
``vehicles`` resource. Write bodies are validated in full before the service
is called, and every validation error is reported at once.
"""

import structlog
from flask import Blueprint, g, request

from dealership.auth.decorators import require_permission
from dealership.blueprints.schemas import VehicleFilterSchema, load_query, parse_pagination
from dealership.business.validators import (
    validate_create_vehicle,
    validate_status_update,
    validate_update_vehicle,
)
from dealership.extensions import get_services
from dealership.utils.request import parse_json_body, require_path_id
from dealership.utils.response import (
    PUBLIC_DETAIL_CACHE,
    PUBLIC_LIST_CACHE,
    ensure_valid,
    outcome_response,
)

logger = structlog.get_logger(__name__)

vehicles_bp = Blueprint('vehicles', __name__, url_prefix='/api/vehicles')


def vehicle_service():
    return get_services().vehicles


# ============================================================================
# COLLECTION
# ============================================================================

@vehicles_bp.route('', methods=['GET'])
def list_vehicles():
    """List vehicles with filters and pagination (public)."""
    pagination = parse_pagination(request.args)
    filters = load_query(VehicleFilterSchema, request.args)

    outcome = vehicle_service().get_all(filters, page=pagination['page'], limit=pagination['limit'])
    return outcome_response(
        outcome,
        'Failed to fetch vehicles',
        'vehicle_list',
        cache_control=PUBLIC_LIST_CACHE,
    )


@vehicles_bp.route('', methods=['POST'])
@require_permission('vehicles', 'create')
def create_vehicle():
    payload = parse_json_body()
    ensure_valid(validate_create_vehicle(payload), 'vehicle')

    outcome = vehicle_service().create(payload, user_id=g.current_user.id)
    if outcome.success:
        logger.info("Vehicle created", vehicle_id=outcome.data['id'], user_id=g.current_user.id)
    return outcome_response(outcome, 'Failed to create vehicle', 'vehicle_create', status_code=201)


@vehicles_bp.route('/stats', methods=['GET'])
@require_permission('vehicles', 'read')
def vehicle_statistics():
    outcome = vehicle_service().get_statistics()
    return outcome_response(
        outcome,
        'Failed to fetch vehicle statistics',
        'vehicle_statistics',
        cache_control=PUBLIC_DETAIL_CACHE,
    )


# ============================================================================
# SINGLE VEHICLE
# ============================================================================

@vehicles_bp.route('/<vehicle_id>', methods=['GET'])
def get_vehicle(vehicle_id: str):
    vehicle_id = require_path_id(vehicle_id, 'Vehicle')
    outcome = vehicle_service().get_by_id(vehicle_id)
    return outcome_response(
        outcome,
        'Failed to fetch vehicle',
        'vehicle_get',
        cache_control=PUBLIC_DETAIL_CACHE,
    )


@vehicles_bp.route('/<vehicle_id>', methods=['PUT'])
@require_permission('vehicles', 'update')
def update_vehicle(vehicle_id: str):
    vehicle_id = require_path_id(vehicle_id, 'Vehicle')
    payload = parse_json_body()
    ensure_valid(validate_update_vehicle(payload), 'vehicle')

    outcome = vehicle_service().update(vehicle_id, payload, user_id=g.current_user.id)
    return outcome_response(outcome, 'Failed to update vehicle', 'vehicle_update')


@vehicles_bp.route('/<vehicle_id>', methods=['DELETE'])
@require_permission('vehicles', 'delete')
def delete_vehicle(vehicle_id: str):
    vehicle_id = require_path_id(vehicle_id, 'Vehicle')
    outcome = vehicle_service().delete(vehicle_id)
    return outcome_response(
        outcome,
        'Failed to delete vehicle',
        'vehicle_delete',
        message='Vehicle deleted successfully',
    )


# ============================================================================
# STATUS TRACKING
# ============================================================================

@vehicles_bp.route('/<vehicle_id>/status', methods=['PATCH'])
@require_permission('vehicles', 'update')
def update_vehicle_status(vehicle_id: str):
    """Move a vehicle to a new status and append it to the status history."""
    vehicle_id = require_path_id(vehicle_id, 'Vehicle')
    payload = parse_json_body()
    ensure_valid(validate_status_update(payload), 'vehicle_status')

    outcome = vehicle_service().update_status(
        vehicle_id,
        payload['status'],
        location=payload.get('location'),
        notes=payload.get('notes'),
        user_id=g.current_user.id,
    )
    return outcome_response(
        outcome,
        'Failed to update vehicle status',
        'vehicle_status_update',
        message='Vehicle status updated successfully',
    )


@vehicles_bp.route('/<vehicle_id>/status', methods=['GET'])
@require_permission('vehicles', 'read')
def vehicle_status_history(vehicle_id: str):
    vehicle_id = require_path_id(vehicle_id, 'Vehicle')
    outcome = vehicle_service().get_status_history(vehicle_id)
    return outcome_response(outcome, 'Failed to fetch status history', 'vehicle_status_history')


__all__ = ['vehicles_bp']
