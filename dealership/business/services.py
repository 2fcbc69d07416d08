"""
Data-access services for vehicles, customers, invoices, expenses and payments.

The HTTP layer talks to services only through the ``ServiceOutcome`` envelope:
every call returns ``success`` plus either ``data`` (and ``pagination`` for
listings) or an ``error`` string with its ``ErrorKind``. Services never raise
to their callers; unexpected exceptions are logged and converted into an
internal-error outcome carrying the raw exception text, which the API layer
sanitizes before it reaches a client.

This module ships the in-memory implementation used for development and
tests. A database-backed implementation only has to honour the same method
signatures and outcome texts (``"Vehicle not found"``,
``"A vehicle with VIN ... already exists"``, ``"Cannot delete ..."``).
"""

import copy
import threading
import uuid
from datetime import date, datetime
from functools import wraps
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from dealership.business.models import (
    LineItem,
    Pagination,
    ServiceOutcome,
    StatusHistoryEntry,
    utcnow,
)
from dealership.business.statistics import (
    ACTIVE_CUSTOMER_WINDOW,
    invoice_status_from_payments,
    is_overdue,
    payment_progress,
    summarize_customers,
    summarize_expenses,
    summarize_invoices,
    summarize_payments,
    summarize_vehicles,
)
from dealership.business.vehicle_status import (
    format_admin_status,
    get_public_status_label,
    get_status_color_info,
    should_show_in_public,
)
from dealership.utils.exceptions import ErrorKind

logger = structlog.get_logger(__name__)

# Keys a client can never set directly.
PROTECTED_FIELDS = ('id', 'created_at', 'updated_at', 'created_by')

INITIAL_VEHICLE_STATUS = 'auction_won'
DEFAULT_PURCHASE_CURRENCY = 'USD'
DEFAULT_INVOICE_STATUS = 'draft'


class InMemoryStore:
    """Process-local tables shared by the in-memory services."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self.lock = threading.RLock()
        self.vehicles: Dict[str, Dict[str, Any]] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.invoices: Dict[str, Dict[str, Any]] = {}
        self.expenses: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.status_history: List[StatusHistoryEntry] = []
        self._invoice_sequence = 0

    def next_invoice_number(self) -> str:
        with self.lock:
            self._invoice_sequence += 1
            return f"INV-{self._invoice_sequence:06d}"

    def new_record(self, payload: Mapping[str, Any], **defaults: Any) -> Dict[str, Any]:
        now = self.clock()
        record = dict(defaults)
        record.update({k: copy.deepcopy(v) for k, v in payload.items() if k not in PROTECTED_FIELDS})
        record['id'] = str(uuid.uuid4())
        record['created_at'] = now
        record['updated_at'] = now
        return record

    def apply_update(self, record: Dict[str, Any], payload: Mapping[str, Any]) -> None:
        for key, value in payload.items():
            if key not in PROTECTED_FIELDS:
                record[key] = copy.deepcopy(value)
        record['updated_at'] = self.clock()


def service_operation(operation: str):
    """Turn unexpected exceptions in a service method into an internal-error outcome."""
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except Exception as exc:
                logger.error(
                    "Service operation failed",
                    operation=operation,
                    service_type=self.__class__.__name__,
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                    exc_info=True,
                )
                return ServiceOutcome.fail(str(exc), ErrorKind.INTERNAL)
        return wrapper
    return decorator


def serialize_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep copy with datetimes rendered as ISO 8601 strings."""
    serialized = {}
    for key, value in record.items():
        if isinstance(value, (datetime, date)):
            serialized[key] = value.isoformat()
        else:
            serialized[key] = copy.deepcopy(value)
    return serialized


def paginate(
    records: List[Dict[str, Any]],
    page: int,
    limit: int,
    serializer: Callable[[Mapping[str, Any]], Dict[str, Any]] = serialize_record,
) -> Tuple[List[Dict[str, Any]], Pagination]:
    start = (page - 1) * limit
    window = records[start:start + limit]
    return [serializer(r) for r in window], Pagination.build(page, limit, len(records))


def _contains(value: Any, needle: str) -> bool:
    return isinstance(value, str) and needle.lower() in value.lower()


def _within_dates(value: Any, date_from: Optional[str], date_to: Optional[str]) -> bool:
    """Inclusive ``YYYY-MM-DD`` window check against a datetime or date string."""
    if isinstance(value, datetime):
        day = value.date().isoformat()
    elif isinstance(value, date):
        day = value.isoformat()
    elif isinstance(value, str):
        day = value[:10]
    else:
        return not (date_from or date_to)
    if date_from and day < date_from:
        return False
    if date_to and day > date_to:
        return False
    return True


class BaseService:
    """Common plumbing for in-memory services."""

    not_found_message = 'Record not found'

    def __init__(self, store: InMemoryStore):
        self.store = store

    def not_found(self) -> ServiceOutcome:
        return ServiceOutcome.fail(self.not_found_message, ErrorKind.NOT_FOUND)

    @staticmethod
    def newest_first(table: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        return list(reversed(list(table.values())))


# ============================================================================
# VEHICLES
# ============================================================================

def serialize_vehicle(vehicle: Mapping[str, Any]) -> Dict[str, Any]:
    """Serialized vehicle plus its storefront label (``None`` when hidden from the public)."""
    serialized = serialize_record(vehicle)
    status = vehicle.get('current_status')
    serialized['public_status_label'] = (
        get_public_status_label(status) if should_show_in_public(status) else None
    )
    return serialized


class VehicleService(BaseService):
    not_found_message = 'Vehicle not found'

    def _vin_taken(self, vin: Any, exclude_id: Optional[str] = None) -> bool:
        if not isinstance(vin, str):
            return False
        return any(
            v['id'] != exclude_id and str(v.get('vin', '')).upper() == vin.upper()
            for v in self.store.vehicles.values()
        )

    def _add_history(self, vehicle_id: str, status: str, notes: Optional[str], user_id: Optional[str]) -> None:
        self.store.status_history.append(StatusHistoryEntry(
            id=str(uuid.uuid4()),
            vehicle_id=vehicle_id,
            status=status,
            notes=notes,
            changed_by=user_id,
            changed_at=self.store.clock(),
        ))

    @service_operation('vehicle_list')
    def get_all(self, filters: Optional[Mapping[str, Any]] = None, page: int = 1, limit: int = 20) -> ServiceOutcome:
        filters = filters or {}
        with self.store.lock:
            matches = [v for v in self.newest_first(self.store.vehicles) if self._matches(v, filters)]
            data, pagination = paginate(matches, page, limit, serialize_vehicle)
        return ServiceOutcome.ok(data, pagination)

    @staticmethod
    def _matches(vehicle: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
        if 'status' in filters and vehicle.get('current_status') != filters['status']:
            return False
        if 'is_public' in filters and bool(vehicle.get('is_public')) != filters['is_public']:
            return False
        if 'make' in filters and not _contains(vehicle.get('make'), filters['make']):
            return False
        if 'model' in filters and not _contains(vehicle.get('model'), filters['model']):
            return False
        if 'auction_house' in filters and vehicle.get('auction_house') != filters['auction_house']:
            return False

        year = vehicle.get('year') or 0
        if 'year_min' in filters and year < filters['year_min']:
            return False
        if 'year_max' in filters and year > filters['year_max']:
            return False

        price = vehicle.get('purchase_price') or 0
        if 'price_min' in filters and price < filters['price_min']:
            return False
        if 'price_max' in filters and price > filters['price_max']:
            return False

        if 'search' in filters:
            needle = filters['search']
            if not any(_contains(vehicle.get(f), needle) for f in ('vin', 'make', 'model')):
                return False
        return True

    @service_operation('vehicle_get')
    def get_by_id(self, vehicle_id: str) -> ServiceOutcome:
        with self.store.lock:
            vehicle = self.store.vehicles.get(vehicle_id)
            if vehicle is None:
                return self.not_found()
            return ServiceOutcome.ok(serialize_vehicle(vehicle))

    @service_operation('vehicle_create')
    def create(self, payload: Mapping[str, Any], user_id: Optional[str] = None) -> ServiceOutcome:
        with self.store.lock:
            vin = payload.get('vin')
            if self._vin_taken(vin):
                return ServiceOutcome.fail(f"A vehicle with VIN {vin} already exists", ErrorKind.CONFLICT)

            vehicle = self.store.new_record(
                payload,
                purchase_currency=DEFAULT_PURCHASE_CURRENCY,
                is_public=False,
                current_location=None,
            )
            vehicle['current_status'] = INITIAL_VEHICLE_STATUS
            vehicle['created_by'] = user_id
            self.store.vehicles[vehicle['id']] = vehicle
            self._add_history(vehicle['id'], INITIAL_VEHICLE_STATUS, 'Vehicle added to system', user_id)

        logger.info("Vehicle created", vehicle_id=vehicle['id'], vin=vin, created_by=user_id)
        return ServiceOutcome.ok(serialize_vehicle(vehicle))

    @service_operation('vehicle_update')
    def update(self, vehicle_id: str, payload: Mapping[str, Any], user_id: Optional[str] = None) -> ServiceOutcome:
        with self.store.lock:
            vehicle = self.store.vehicles.get(vehicle_id)
            if vehicle is None:
                return self.not_found()

            vin = payload.get('vin')
            if 'vin' in payload and self._vin_taken(vin, exclude_id=vehicle_id):
                return ServiceOutcome.fail(f"A vehicle with VIN {vin} already exists", ErrorKind.CONFLICT)

            previous_status = vehicle.get('current_status')
            self.store.apply_update(vehicle, payload)

            new_status = payload.get('current_status')
            if new_status and new_status != previous_status:
                location = payload.get('current_location')
                notes = f"Location: {location}" if location else None
                self._add_history(vehicle_id, new_status, notes, user_id)

            return ServiceOutcome.ok(serialize_vehicle(vehicle))

    @service_operation('vehicle_delete')
    def delete(self, vehicle_id: str) -> ServiceOutcome:
        with self.store.lock:
            if vehicle_id not in self.store.vehicles:
                return self.not_found()
            if any(i.get('vehicle_id') == vehicle_id for i in self.store.invoices.values()):
                return ServiceOutcome.fail(
                    'Cannot delete vehicle with existing invoices', ErrorKind.CONFLICT
                )

            del self.store.vehicles[vehicle_id]
            self.store.status_history = [
                entry for entry in self.store.status_history if entry.vehicle_id != vehicle_id
            ]
            for expense in self.store.expenses.values():
                if expense.get('vehicle_id') == vehicle_id:
                    expense['vehicle_id'] = None

        logger.info("Vehicle deleted", vehicle_id=vehicle_id)
        return ServiceOutcome.ok()

    @service_operation('vehicle_status_update')
    def update_status(
        self,
        vehicle_id: str,
        status: str,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ServiceOutcome:
        with self.store.lock:
            vehicle = self.store.vehicles.get(vehicle_id)
            if vehicle is None:
                return self.not_found()

            changes: Dict[str, Any] = {'current_status': status}
            if location:
                changes['current_location'] = location
            self.store.apply_update(vehicle, changes)

            history_notes = notes or (f"Location: {location}" if location else None)
            self._add_history(vehicle_id, status, history_notes, user_id)

            return ServiceOutcome.ok(serialize_vehicle(vehicle))

    @service_operation('vehicle_status_history')
    def get_status_history(self, vehicle_id: str) -> ServiceOutcome:
        with self.store.lock:
            if vehicle_id not in self.store.vehicles:
                return self.not_found()
            entries = [e for e in self.store.status_history if e.vehicle_id == vehicle_id]

        history = []
        for entry in reversed(entries):
            item = entry.model_dump(mode='json')
            item['status_label'] = format_admin_status(entry.status)
            item['display'] = get_status_color_info(entry.status)
            history.append(item)
        return ServiceOutcome.ok(history)

    @service_operation('vehicle_statistics')
    def get_statistics(self) -> ServiceOutcome:
        with self.store.lock:
            vehicles = list(self.store.vehicles.values())
        return ServiceOutcome.ok(summarize_vehicles(vehicles, now=self.store.clock()))


# ============================================================================
# CUSTOMERS
# ============================================================================

class CustomerService(BaseService):
    not_found_message = 'Customer not found'

    def _email_taken(self, email: Any, exclude_id: Optional[str] = None) -> bool:
        if not isinstance(email, str) or not email:
            return False
        return any(
            c['id'] != exclude_id and str(c.get('email') or '').lower() == email.lower()
            for c in self.store.customers.values()
        )

    @service_operation('customer_list')
    def get_all(self, filters: Optional[Mapping[str, Any]] = None, page: int = 1, limit: int = 20) -> ServiceOutcome:
        filters = filters or {}
        with self.store.lock:
            matches = [c for c in self.newest_first(self.store.customers) if self._matches(c, filters)]
            data, pagination = paginate(matches, page, limit)
        return ServiceOutcome.ok(data, pagination)

    @staticmethod
    def _matches(customer: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
        if 'search' in filters:
            needle = filters['search']
            if not any(_contains(customer.get(f), needle) for f in ('full_name', 'email', 'phone')):
                return False
        if 'city' in filters and not _contains(customer.get('city'), filters['city']):
            return False
        if 'country' in filters and not _contains(customer.get('country'), filters['country']):
            return False
        if 'marketing_consent' in filters and bool(customer.get('marketing_consent')) != filters['marketing_consent']:
            return False
        return _within_dates(
            customer.get('created_at'), filters.get('created_from'), filters.get('created_to')
        )

    @service_operation('customer_get')
    def get_by_id(self, customer_id: str) -> ServiceOutcome:
        with self.store.lock:
            customer = self.store.customers.get(customer_id)
            if customer is None:
                return self.not_found()
            return ServiceOutcome.ok(serialize_record(customer))

    @service_operation('customer_create')
    def create(self, payload: Mapping[str, Any], user_id: Optional[str] = None) -> ServiceOutcome:
        with self.store.lock:
            email = payload.get('email')
            if self._email_taken(email):
                return ServiceOutcome.fail(
                    f"A customer with email {email} already exists", ErrorKind.CONFLICT
                )
            customer = self.store.new_record(payload, preferred_language='en', marketing_consent=False)
            customer['created_by'] = user_id
            self.store.customers[customer['id']] = customer

        logger.info("Customer created", customer_id=customer['id'], created_by=user_id)
        return ServiceOutcome.ok(serialize_record(customer))

    @service_operation('customer_update')
    def update(self, customer_id: str, payload: Mapping[str, Any], user_id: Optional[str] = None) -> ServiceOutcome:
        with self.store.lock:
            customer = self.store.customers.get(customer_id)
            if customer is None:
                return self.not_found()
            email = payload.get('email')
            if 'email' in payload and self._email_taken(email, exclude_id=customer_id):
                return ServiceOutcome.fail(
                    f"A customer with email {email} already exists", ErrorKind.CONFLICT
                )
            self.store.apply_update(customer, payload)
            return ServiceOutcome.ok(serialize_record(customer))

    @service_operation('customer_delete')
    def delete(self, customer_id: str) -> ServiceOutcome:
        with self.store.lock:
            if customer_id not in self.store.customers:
                return self.not_found()
            if any(i.get('customer_id') == customer_id for i in self.store.invoices.values()):
                return ServiceOutcome.fail(
                    'Cannot delete customer with existing invoices', ErrorKind.CONFLICT
                )
            del self.store.customers[customer_id]

        logger.info("Customer deleted", customer_id=customer_id)
        return ServiceOutcome.ok()

    @service_operation('customer_statistics')
    def get_statistics(self) -> ServiceOutcome:
        now = self.store.clock()
        with self.store.lock:
            customers = list(self.store.customers.values())
            # Active: invoiced within the activity window.
            active_ids = {
                i.get('customer_id') for i in self.store.invoices.values()
                if i.get('created_at') and i['created_at'] >= now - ACTIVE_CUSTOMER_WINDOW
            }
        return ServiceOutcome.ok(summarize_customers(customers, active_ids, now=now))


# ============================================================================
# INVOICES
# ============================================================================

class InvoiceService(BaseService):
    not_found_message = 'Invoice not found'

    def _number_taken(self, number: Any, exclude_id: Optional[str] = None) -> bool:
        return any(
            i['id'] != exclude_id and i.get('invoice_number') == number
            for i in self.store.invoices.values()
        )

    def _check_references(
        self, payload: Mapping[str, Any], invoice_id: Optional[str] = None
    ) -> Optional[ServiceOutcome]:
        customer_id = payload.get('customer_id')
        if customer_id and customer_id not in self.store.customers:
            return ServiceOutcome.fail('Customer not found', ErrorKind.NOT_FOUND)
        vehicle_id = payload.get('vehicle_id')
        if vehicle_id and vehicle_id not in self.store.vehicles:
            return ServiceOutcome.fail('Vehicle not found', ErrorKind.NOT_FOUND)
        number = payload.get('invoice_number')
        if number and self._number_taken(number, exclude_id=invoice_id):
            return ServiceOutcome.fail(
                f"Invoice number {number} already exists", ErrorKind.CONFLICT
            )
        return None

    @staticmethod
    def _normalize_line_items(line_items: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        return [LineItem(**item).model_dump(exclude_none=True) for item in line_items]

    @service_operation('invoice_list')
    def get_all(self, filters: Optional[Mapping[str, Any]] = None, page: int = 1, limit: int = 20) -> ServiceOutcome:
        filters = filters or {}
        today = self.store.clock().date()
        with self.store.lock:
            matches = [
                i for i in self.newest_first(self.store.invoices) if self._matches(i, filters, today)
            ]
            data, pagination = paginate(matches, page, limit)
        return ServiceOutcome.ok(data, pagination)

    @staticmethod
    def _matches(invoice: Mapping[str, Any], filters: Mapping[str, Any], today: date) -> bool:
        if 'search' in filters:
            needle = filters['search']
            if not any(_contains(invoice.get(f), needle) for f in ('invoice_number', 'notes')):
                return False
        for field in ('status', 'customer_id', 'vehicle_id', 'currency'):
            if field in filters and invoice.get(field) != filters[field]:
                return False
        if not _within_dates(invoice.get('created_at'), filters.get('created_from'), filters.get('created_to')):
            return False
        if not _within_dates(invoice.get('due_date'), filters.get('due_from'), filters.get('due_to')):
            return False
        if filters.get('overdue_only') and not is_overdue(invoice, today):
            return False
        return True

    @service_operation('invoice_get')
    def get_by_id(self, invoice_id: str) -> ServiceOutcome:
        with self.store.lock:
            invoice = self.store.invoices.get(invoice_id)
            if invoice is None:
                return self.not_found()
            return ServiceOutcome.ok(serialize_record(invoice))

    @service_operation('invoice_create')
    def create(self, payload: Mapping[str, Any], user_id: Optional[str] = None) -> ServiceOutcome:
        with self.store.lock:
            failure = self._check_references(payload)
            if failure is not None:
                return failure

            invoice = self.store.new_record(payload, status=DEFAULT_INVOICE_STATUS, vehicle_id=None)
            invoice['line_items'] = self._normalize_line_items(payload.get('line_items') or [])
            if not invoice.get('invoice_number'):
                invoice['invoice_number'] = self.store.next_invoice_number()
            invoice['created_by'] = user_id
            self.store.invoices[invoice['id']] = invoice

        logger.info(
            "Invoice created",
            invoice_id=invoice['id'],
            invoice_number=invoice['invoice_number'],
            created_by=user_id,
        )
        return ServiceOutcome.ok(serialize_record(invoice))

    @service_operation('invoice_update')
    def update(self, invoice_id: str, payload: Mapping[str, Any], user_id: Optional[str] = None) -> ServiceOutcome:
        with self.store.lock:
            invoice = self.store.invoices.get(invoice_id)
            if invoice is None:
                return self.not_found()

            failure = self._check_references(payload, invoice_id=invoice_id)
            if failure is not None:
                return failure

            changes = dict(payload)
            if 'line_items' in changes:
                changes['line_items'] = self._normalize_line_items(changes['line_items'])
            self.store.apply_update(invoice, changes)
            return ServiceOutcome.ok(serialize_record(invoice))

    @service_operation('invoice_delete')
    def delete(self, invoice_id: str) -> ServiceOutcome:
        with self.store.lock:
            if invoice_id not in self.store.invoices:
                return self.not_found()
            if any(p.get('invoice_id') == invoice_id for p in self.store.payments.values()):
                return ServiceOutcome.fail(
                    'Cannot delete invoice with existing payments', ErrorKind.CONFLICT
                )
            del self.store.invoices[invoice_id]

        logger.info("Invoice deleted", invoice_id=invoice_id)
        return ServiceOutcome.ok()

    @service_operation('invoice_statistics')
    def get_statistics(self, filters: Optional[Mapping[str, Any]] = None) -> ServiceOutcome:
        filters = filters or {}
        with self.store.lock:
            invoices = [
                i for i in self.store.invoices.values()
                if _within_dates(i.get('created_at'), filters.get('created_from'), filters.get('created_to'))
            ]
        return ServiceOutcome.ok(summarize_invoices(invoices, today=self.store.clock().date()))


# ============================================================================
# EXPENSES
# ============================================================================

class ExpenseService(BaseService):
    not_found_message = 'Expense not found'

    @service_operation('expense_create')
    def create(self, payload: Mapping[str, Any], user_id: Optional[str] = None) -> ServiceOutcome:
        with self.store.lock:
            vehicle_id = payload.get('vehicle_id')
            if vehicle_id and vehicle_id not in self.store.vehicles:
                return ServiceOutcome.fail('Vehicle not found', ErrorKind.NOT_FOUND)
            expense = self.store.new_record(payload, currency='AED', vehicle_id=None)
            expense.setdefault('date', self.store.clock().date().isoformat())
            expense['created_by'] = user_id
            self.store.expenses[expense['id']] = expense
        return ServiceOutcome.ok(serialize_record(expense))

    @service_operation('expense_statistics')
    def get_statistics(self, filters: Optional[Mapping[str, Any]] = None) -> ServiceOutcome:
        filters = filters or {}
        with self.store.lock:
            expenses = [
                e for e in self.store.expenses.values()
                if _within_dates(e.get('date'), filters.get('date_from'), filters.get('date_to'))
                and (not filters.get('vehicle_id') or e.get('vehicle_id') == filters['vehicle_id'])
            ]
        return ServiceOutcome.ok(summarize_expenses(expenses))


# ============================================================================
# PAYMENTS
# ============================================================================

class PaymentService(BaseService):
    """
    Payments recorded against invoices.

    Every change to an invoice's payments re-derives that invoice's status
    (``sent``, ``partially_paid``, ``fully_paid`` or ``overdue``) from the
    amount paid so far.
    """

    not_found_message = 'Payment not found'

    def _invoice_payments(self, invoice_id: str) -> List[Dict[str, Any]]:
        return [p for p in self.store.payments.values() if p.get('invoice_id') == invoice_id]

    def _sync_invoice_status(self, invoice_id: Optional[str]) -> None:
        invoice = self.store.invoices.get(invoice_id)
        if invoice is None:
            return
        total_paid = sum(float(p.get('amount') or 0) for p in self._invoice_payments(invoice_id))
        status = invoice_status_from_payments(invoice, total_paid, self.store.clock().date())
        if status != invoice.get('status'):
            previous = invoice.get('status')
            self.store.apply_update(invoice, {'status': status})
            logger.info(
                "Invoice status synced from payments",
                invoice_id=invoice_id,
                previous_status=previous,
                status=status,
                total_paid=total_paid,
            )

    def _present(self, payment: Mapping[str, Any]) -> Dict[str, Any]:
        serialized = serialize_record(payment)
        invoice = self.store.invoices.get(payment.get('invoice_id'))
        serialized['invoice'] = None if invoice is None else {
            'id': invoice['id'],
            'invoice_number': invoice.get('invoice_number'),
            'total_amount': invoice.get('total_amount'),
            'customer_id': invoice.get('customer_id'),
            'status': invoice.get('status'),
        }
        return serialized

    @staticmethod
    def _matches(payment: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
        if 'search' in filters:
            needle = filters['search']
            if not any(_contains(payment.get(f), needle) for f in ('transaction_id', 'notes')):
                return False
        for field in ('invoice_id', 'payment_method', 'currency'):
            if field in filters and payment.get(field) != filters[field]:
                return False
        if not _within_dates(payment.get('payment_date'), filters.get('date_from'), filters.get('date_to')):
            return False
        amount = payment.get('amount') or 0
        if 'amount_from' in filters and amount < filters['amount_from']:
            return False
        if 'amount_to' in filters and amount > filters['amount_to']:
            return False
        return True

    @service_operation('payment_list')
    def get_all(self, filters: Optional[Mapping[str, Any]] = None, page: int = 1, limit: int = 20) -> ServiceOutcome:
        filters = filters or {}
        with self.store.lock:
            matches = [p for p in self.newest_first(self.store.payments) if self._matches(p, filters)]
            # Latest payment date first; same-day payments newest first.
            matches.sort(key=lambda p: p.get('payment_date') or '', reverse=True)
            data, pagination = paginate(matches, page, limit, self._present)
        return ServiceOutcome.ok(data, pagination)

    @service_operation('payment_get')
    def get_by_id(self, payment_id: str) -> ServiceOutcome:
        with self.store.lock:
            payment = self.store.payments.get(payment_id)
            if payment is None:
                return self.not_found()
            return ServiceOutcome.ok(self._present(payment))

    @service_operation('payment_create')
    def create(self, payload: Mapping[str, Any], user_id: Optional[str] = None) -> ServiceOutcome:
        with self.store.lock:
            invoice_id = payload.get('invoice_id')
            if invoice_id not in self.store.invoices:
                return ServiceOutcome.fail('Invoice not found', ErrorKind.NOT_FOUND)

            payment = self.store.new_record(payload, transaction_id=None, notes=None)
            payment['recorded_by'] = user_id
            self.store.payments[payment['id']] = payment
            self._sync_invoice_status(invoice_id)
            data = self._present(payment)

        logger.info(
            "Payment recorded",
            payment_id=payment['id'],
            invoice_id=invoice_id,
            amount=payment.get('amount'),
            currency=payment.get('currency'),
            recorded_by=user_id,
        )
        return ServiceOutcome.ok(data)

    @service_operation('payment_update')
    def update(self, payment_id: str, payload: Mapping[str, Any], user_id: Optional[str] = None) -> ServiceOutcome:
        with self.store.lock:
            payment = self.store.payments.get(payment_id)
            if payment is None:
                return self.not_found()
            if 'invoice_id' in payload and payload['invoice_id'] not in self.store.invoices:
                return ServiceOutcome.fail('Invoice not found', ErrorKind.NOT_FOUND)

            previous_invoice_id = payment.get('invoice_id')
            self.store.apply_update(payment, payload)
            self._sync_invoice_status(previous_invoice_id)
            if payment.get('invoice_id') != previous_invoice_id:
                self._sync_invoice_status(payment.get('invoice_id'))
            return ServiceOutcome.ok(self._present(payment))

    @service_operation('payment_delete')
    def delete(self, payment_id: str) -> ServiceOutcome:
        with self.store.lock:
            payment = self.store.payments.pop(payment_id, None)
            if payment is None:
                return self.not_found()
            self._sync_invoice_status(payment.get('invoice_id'))

        logger.info("Payment deleted", payment_id=payment_id, invoice_id=payment.get('invoice_id'))
        return ServiceOutcome.ok()

    @service_operation('payment_invoice_summary')
    def get_invoice_summary(self, invoice_id: str) -> ServiceOutcome:
        with self.store.lock:
            invoice = self.store.invoices.get(invoice_id)
            if invoice is None:
                return ServiceOutcome.fail('Invoice not found', ErrorKind.NOT_FOUND)
            payments = sorted(
                self._invoice_payments(invoice_id),
                key=lambda p: p.get('payment_date') or '',
                reverse=True,
            )

        summary = payment_progress(invoice, payments)
        summary['payments'] = [
            {key: payment.get(key) for key in (
                'id', 'amount', 'currency', 'payment_date', 'payment_method', 'transaction_id'
            )}
            for payment in payments
        ]
        return ServiceOutcome.ok(summary)

    @service_operation('payment_statistics')
    def get_statistics(self, filters: Optional[Mapping[str, Any]] = None) -> ServiceOutcome:
        filters = filters or {}
        with self.store.lock:
            payments = [
                p for p in self.store.payments.values()
                if _within_dates(p.get('payment_date'), filters.get('date_from'), filters.get('date_to'))
            ]
        return ServiceOutcome.ok(summarize_payments(payments))


class Services:
    """The set of services an application instance is wired to."""

    def __init__(self, vehicles, customers, invoices, expenses, payments=None):
        self.vehicles = vehicles
        self.customers = customers
        self.invoices = invoices
        self.expenses = expenses
        self.payments = payments


def create_in_memory_services(store: Optional[InMemoryStore] = None) -> Services:
    store = store or InMemoryStore()
    return Services(
        vehicles=VehicleService(store),
        customers=CustomerService(store),
        invoices=InvoiceService(store),
        expenses=ExpenseService(store),
        payments=PaymentService(store),
    )


__all__ = [
    'InMemoryStore',
    'service_operation',
    'serialize_record',
    'serialize_vehicle',
    'paginate',
    'BaseService',
    'VehicleService',
    'CustomerService',
    'InvoiceService',
    'ExpenseService',
    'PaymentService',
    'Services',
    'create_in_memory_services',
]
