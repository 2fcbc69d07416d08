"""
Aggregate statistics over vehicles, invoices, customers, expenses and payments.

All functions take plain record dictionaries (as stored by the services) plus
an explicit "now" so results are reproducible in tests. Currency conversion
uses fixed rates into AED.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, Mapping, Optional

from dealership.business.consistency import round_to_cents
from dealership.business.models import Currency, utcnow

EXCHANGE_RATES_TO_AED: Dict[str, float] = {
    Currency.AED.value: 1.0,
    Currency.USD.value: 3.67,
    Currency.CAD.value: 2.7,
}

SETTLED_INVOICE_STATUSES = ('fully_paid', 'cancelled')

RECENT_VEHICLE_WINDOW = timedelta(days=7)
RECENT_CUSTOMER_WINDOW = timedelta(days=30)
ACTIVE_CUSTOMER_WINDOW = timedelta(days=90)


def convert_to_aed(amount: float, currency: Optional[str]) -> float:
    """Unknown currencies are taken at face value."""
    return float(amount) * EXCHANGE_RATES_TO_AED.get(currency or 'AED', 1.0)


def _created_since(record: Mapping[str, Any], cutoff: datetime) -> bool:
    created_at = record.get('created_at')
    return created_at is not None and created_at >= cutoff


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def is_overdue(invoice: Mapping[str, Any], today: date) -> bool:
    due_date = _parse_date(invoice.get('due_date'))
    return (
        due_date is not None
        and due_date < today
        and invoice.get('status') not in SETTLED_INVOICE_STATUSES
    )


def summarize_vehicles(vehicles: Iterable[Mapping[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    cutoff = now - RECENT_VEHICLE_WINDOW

    total = 0
    by_status: Dict[str, int] = {}
    recent_additions = 0
    for vehicle in vehicles:
        total += 1
        status = vehicle.get('current_status') or 'unknown'
        by_status[status] = by_status.get(status, 0) + 1
        if _created_since(vehicle, cutoff):
            recent_additions += 1

    return {'total': total, 'byStatus': by_status, 'recentAdditions': recent_additions}


def summarize_invoices(invoices: Iterable[Mapping[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    """
    Invoice totals by currency and by status, plus the overdue position.

    An invoice is overdue when its due date is before ``today`` and it is
    neither fully paid nor cancelled. Amounts are summed in the invoice's own
    currency, without conversion.
    """
    today = today or utcnow().date()

    total = 0
    status_counts: Dict[str, int] = {}
    status_totals: Dict[str, float] = {}
    currency_totals: Dict[str, float] = {}
    overdue_count = 0
    overdue_amount = 0.0

    for invoice in invoices:
        total += 1
        amount = float(invoice.get('total_amount') or 0)
        status = invoice.get('status') or 'unknown'
        currency = invoice.get('currency') or 'unknown'

        status_counts[status] = status_counts.get(status, 0) + 1
        status_totals[status] = status_totals.get(status, 0.0) + amount
        currency_totals[currency] = currency_totals.get(currency, 0.0) + amount

        if is_overdue(invoice, today):
            overdue_count += 1
            overdue_amount += amount

    return {
        'total': total,
        'totalValue': currency_totals,
        'byStatus': {'counts': status_counts, 'totals': status_totals},
        'overdue': {'count': overdue_count, 'amount': overdue_amount},
    }


def summarize_customers(
    customers: Iterable[Mapping[str, Any]],
    active_customer_ids: Iterable[str] = (),
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or utcnow()
    cutoff = now - RECENT_CUSTOMER_WINDOW
    active_ids = set(active_customer_ids)

    total = recent = active = 0
    for customer in customers:
        total += 1
        if _created_since(customer, cutoff):
            recent += 1
        if customer.get('id') in active_ids:
            active += 1

    return {'total': total, 'recent': recent, 'active': active}


def summarize_expenses(expenses: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Expense totals in AED overall and by category; raw totals by currency."""
    total = 0.0
    by_category: Dict[str, float] = {}
    by_currency: Dict[str, float] = {}
    count = 0

    for expense in expenses:
        count += 1
        amount = float(expense.get('amount') or 0)
        currency = expense.get('currency') or 'unknown'
        amount_in_aed = convert_to_aed(amount, currency)

        total += amount_in_aed
        category = expense.get('category') or 'other'
        by_category[category] = by_category.get(category, 0.0) + amount_in_aed
        by_currency[currency] = by_currency.get(currency, 0.0) + amount

    return {'total': total, 'byCategory': by_category, 'byCurrency': by_currency, 'count': count}


def summarize_payments(payments: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Payment count, amounts per currency, and counts and amounts per method."""
    count = 0
    by_currency: Dict[str, float] = {}
    method_counts: Dict[str, int] = {}
    method_totals: Dict[str, float] = {}

    for payment in payments:
        count += 1
        amount = float(payment.get('amount') or 0)
        currency = payment.get('currency') or 'unknown'
        method = payment.get('payment_method') or 'other'

        by_currency[currency] = by_currency.get(currency, 0.0) + amount
        method_counts[method] = method_counts.get(method, 0) + 1
        method_totals[method] = method_totals.get(method, 0.0) + amount

    return {
        'total': count,
        'totalValue': by_currency,
        'byMethod': {'counts': method_counts, 'totals': method_totals},
    }


def payment_progress(invoice: Mapping[str, Any], payments: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """How much of an invoice is paid; amounts are summed as recorded."""
    amounts = [float(payment.get('amount') or 0) for payment in payments]
    invoice_amount = float(invoice.get('total_amount') or 0)
    total_paid = sum(amounts)
    percentage = total_paid / invoice_amount * 100 if invoice_amount > 0 else 0.0
    return {
        'invoice_amount': invoice_amount,
        'total_paid': total_paid,
        'balance_due': invoice_amount - total_paid,
        'payment_percentage': round(percentage, 2),
        'payment_count': len(amounts),
    }


def invoice_status_from_payments(invoice: Mapping[str, Any], total_paid: float, today: date) -> str:
    """
    Invoice status implied by the amount paid so far.

    Unpaid invoices stay ``draft`` or fall back to ``sent``; any payment makes
    them ``partially_paid`` until the total is covered. An invoice past its
    due date that is not fully paid becomes ``overdue``.
    """
    total_amount = float(invoice.get('total_amount') or 0)

    if total_paid == 0:
        status = 'draft' if invoice.get('status') == 'draft' else 'sent'
    elif round_to_cents(total_paid) >= round_to_cents(total_amount):
        status = 'fully_paid'
    else:
        status = 'partially_paid'

    due_date = _parse_date(invoice.get('due_date'))
    if due_date is not None and due_date < today and status != 'fully_paid':
        status = 'overdue'
    return status


__all__ = [
    'EXCHANGE_RATES_TO_AED',
    'SETTLED_INVOICE_STATUSES',
    'ACTIVE_CUSTOMER_WINDOW',
    'convert_to_aed',
    'is_overdue',
    'summarize_vehicles',
    'summarize_invoices',
    'summarize_customers',
    'summarize_expenses',
    'summarize_payments',
    'payment_progress',
    'invoice_status_from_payments',
]
