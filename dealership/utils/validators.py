"""
Field-level validators for dealership API payloads.

Every validator here takes a single untyped value (usually straight out of a
parsed JSON body) and answers with a plain boolean. They are total: a value of
the wrong type is simply invalid, nothing is raised. Entity validators in
``dealership.business.validators`` compose these into full payload checks and
turn failures into human-readable messages.

Also provides ``ValidationResult``, the accumulated pass/fail report returned by
every entity validator.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional


# Format patterns. Digit classes are spelled [0-9] so that non-ASCII digits
# never satisfy them.
EMAIL_REGEX = re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+')
PHONE_REGEX = re.compile(r'\+?[0-9\s\-()]+')
DATE_ONLY_REGEX = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}')

MIN_PHONE_DIGITS = 8
MIN_VIN_LENGTH = 10
MAX_VIN_LENGTH = 17
MIN_VEHICLE_YEAR = 1900

SUPPORTED_LANGUAGES = ('en', 'ar', 'fr', 'es', 'de', 'it', 'ru', 'hi', 'ur')
SUPPORTED_CURRENCIES = ('AED', 'USD', 'CAD')
DAMAGE_SEVERITIES = ('minor', 'moderate', 'major', 'total_loss')
SALE_TYPES = ('local_only', 'export_only', 'local_and_export')
PAYMENT_METHODS = ('cash', 'bank_transfer', 'check', 'credit_card', 'other')

INVOICE_STATUSES = (
    'draft', 'sent', 'viewed', 'partially_paid', 'fully_paid', 'overdue', 'cancelled'
)

VEHICLE_STATUSES = (
    'auction_won', 'payment_processing', 'pickup_scheduled', 'in_transit_to_port',
    'at_port', 'shipped', 'in_transit', 'at_uae_port', 'customs_clearance',
    'released_from_customs', 'in_transit_to_yard', 'at_yard', 'under_enhancement',
    'ready_for_sale', 'reserved', 'sold', 'delivered',
)


class ValidationResult:
    """
    Accumulated outcome of validating one payload.

    Errors are collected in the order the rules ran; a result is valid only
    when no rule reported a problem.
    """

    def __init__(self, errors: Optional[Iterable[str]] = None):
        self.errors: List[str] = list(errors or [])

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def extend(self, messages: Iterable[str], prefix: str = '') -> None:
        for message in messages:
            self.errors.append(f"{prefix}{message}")

    def joined(self, separator: str = ', ') -> str:
        """Render the errors as the single ``details`` string used on the wire."""
        return separator.join(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {'is_valid': self.is_valid, 'errors': list(self.errors)}

    def __bool__(self) -> bool:
        return self.is_valid

    def __repr__(self) -> str:
        return f"ValidationResult(is_valid={self.is_valid}, errors={self.errors!r})"


def is_number(value: Any) -> bool:
    """True for finite int/float values. Booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_non_negative_number(value: Any) -> bool:
    return is_number(value) and value >= 0


def is_positive_number(value: Any) -> bool:
    return is_number(value) and value > 0


def is_integer(value: Any) -> bool:
    """True for ints and for floats with no fractional part (JSON ``2021.0``)."""
    if not is_number(value):
        return False
    return isinstance(value, int) or float(value).is_integer()


def is_blank(value: Any) -> bool:
    """
    True when a required field should be reported as missing.

    Missing, null, empty string, ``False`` and numeric zero all count as
    absent for required-field checks.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ''
    if is_number(value):
        return value == 0
    return False


def is_valid_email(value: Any) -> bool:
    """Check ``local@domain.tld`` shape: no whitespace, exactly the one ``@``."""
    if not isinstance(value, str):
        return False
    return EMAIL_REGEX.fullmatch(value) is not None


def is_valid_phone(value: Any) -> bool:
    """Digits, spaces, dashes and parentheses with an optional leading ``+``;
    at least eight digits overall."""
    if not isinstance(value, str):
        return False
    if PHONE_REGEX.fullmatch(value) is None:
        return False
    digits = sum(1 for char in value if '0' <= char <= '9')
    return digits >= MIN_PHONE_DIGITS


def is_valid_language_code(value: Any) -> bool:
    return isinstance(value, str) and value in SUPPORTED_LANGUAGES


def is_valid_date_only(value: Any) -> bool:
    """``YYYY-MM-DD`` that names a real calendar day."""
    if not isinstance(value, str) or DATE_ONLY_REGEX.fullmatch(value) is None:
        return False
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        return False
    return True


def is_valid_currency(value: Any) -> bool:
    return isinstance(value, str) and value in SUPPORTED_CURRENCIES


def is_valid_vin(value: Any) -> bool:
    return isinstance(value, str) and MIN_VIN_LENGTH <= len(value) <= MAX_VIN_LENGTH


def max_vehicle_year(today: Optional[date] = None) -> int:
    """Latest accepted model year: next calendar year."""
    return (today or date.today()).year + 1


def is_valid_year(value: Any, today: Optional[date] = None) -> bool:
    if not is_integer(value):
        return False
    return MIN_VEHICLE_YEAR <= value <= max_vehicle_year(today)


def is_valid_damage_severity(value: Any) -> bool:
    return isinstance(value, str) and value in DAMAGE_SEVERITIES


def is_valid_vehicle_status(value: Any) -> bool:
    return isinstance(value, str) and value in VEHICLE_STATUSES


def is_valid_invoice_status(value: Any) -> bool:
    return isinstance(value, str) and value in INVOICE_STATUSES


def is_valid_sale_type(value: Any) -> bool:
    return isinstance(value, str) and value in SALE_TYPES


def is_valid_payment_method(value: Any) -> bool:
    return isinstance(value, str) and value in PAYMENT_METHODS


__all__ = [
    'ValidationResult',
    'EMAIL_REGEX',
    'PHONE_REGEX',
    'DATE_ONLY_REGEX',
    'SUPPORTED_LANGUAGES',
    'SUPPORTED_CURRENCIES',
    'DAMAGE_SEVERITIES',
    'SALE_TYPES',
    'PAYMENT_METHODS',
    'INVOICE_STATUSES',
    'VEHICLE_STATUSES',
    'MIN_VEHICLE_YEAR',
    'is_number',
    'is_non_negative_number',
    'is_positive_number',
    'is_integer',
    'is_blank',
    'is_valid_email',
    'is_valid_phone',
    'is_valid_language_code',
    'is_valid_date_only',
    'is_valid_currency',
    'is_valid_vin',
    'max_vehicle_year',
    'is_valid_year',
    'is_valid_damage_severity',
    'is_valid_vehicle_status',
    'is_valid_invoice_status',
    'is_valid_sale_type',
    'is_valid_payment_method',
]
