"""Expense reporting endpoint."""

from flask import Blueprint, request

from dealership.auth.decorators import require_permission
from dealership.blueprints.schemas import ExpenseStatisticsSchema, load_query
from dealership.extensions import get_services
from dealership.utils.response import PUBLIC_DETAIL_CACHE, outcome_response

expenses_bp = Blueprint('expenses', __name__, url_prefix='/api/expenses')


@expenses_bp.route('/stats', methods=['GET'])
@require_permission('expenses', 'read')
def expense_statistics():
    """Expense totals in AED, by category and by original currency."""
    filters = load_query(ExpenseStatisticsSchema, request.args)
    outcome = get_services().expenses.get_statistics(filters)
    return outcome_response(
        outcome,
        'Failed to fetch expense statistics',
        'expense_statistics',
        cache_control=PUBLIC_DETAIL_CACHE,
    )


__all__ = ['expenses_bp']
