"""
Entity validators for vehicle, invoice, customer and payment payloads.

Each payload is checked by a marshmallow schema built from the field-level
predicates in ``dealership.utils.validators``. The schema's error dictionary
is flattened into a ``ValidationResult``: fields report in declaration order,
followed by the cross-field checks of ``@validates_schema``. Every rule runs,
so a client sees everything wrong with a payload in one round trip.
Validators never raise and never modify the payload they are given.

Presence rules follow the API's historical contract:

- required fields treat null, empty string, ``false`` and ``0`` as missing;
- most optional fields are checked whenever the key is present, even when
  its value is null;
- optional enum and string fields are only checked when they hold a
  non-blank value.

Vehicle errors are reported as ``"<field>: <message>"``. Invoice line-item
errors are prefixed with ``"Line item N: "`` (1-based).
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog
from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load, validate, validates_schema

from dealership.business.consistency import (
    LINE_ITEM_TOTAL_MESSAGE,
    check_invoice_amounts,
    line_item_total_consistent,
)
from dealership.utils.validators import (
    DAMAGE_SEVERITIES,
    INVOICE_STATUSES,
    PAYMENT_METHODS,
    SALE_TYPES,
    SUPPORTED_CURRENCIES,
    SUPPORTED_LANGUAGES,
    VEHICLE_STATUSES,
    ValidationResult,
    is_blank,
    is_non_negative_number,
    is_number,
    is_positive_number,
    is_valid_currency,
    is_valid_damage_severity,
    is_valid_date_only,
    is_valid_email,
    is_valid_invoice_status,
    is_valid_language_code,
    is_valid_payment_method,
    is_valid_phone,
    is_valid_sale_type,
    is_valid_vehicle_status,
    is_valid_vin,
    is_valid_year,
    max_vehicle_year,
)

logger = structlog.get_logger(__name__)

NOT_AN_OBJECT_MESSAGE = 'Request body must be a JSON object'

INVOICE_STATUS_LIST = ', '.join(INVOICE_STATUSES)
VEHICLE_STATUS_LIST = ', '.join(VEHICLE_STATUSES)
CURRENCY_LIST = ', '.join(SUPPORTED_CURRENCIES)
LANGUAGE_LIST = ', '.join(SUPPORTED_LANGUAGES)
PAYMENT_METHOD_LIST = ', '.join(PAYMENT_METHODS)
# Vehicle messages list currencies in the order the vehicle forms offer them.
VEHICLE_CURRENCY_LIST = 'USD, CAD, AED'

AMOUNT_FIELDS = ('subtotal', 'vat_rate', 'vat_amount', 'total_amount')

SCHEMA_ERRORS_KEY = '_schema'
# Label used for errors inside list fields, e.g. "Line item 2: ...".
COLLECTION_ITEM_LABELS = {'line_items': 'Line item'}

# Blank-value policies for RuleField.
REQUIRED = 'required'
SKIP = 'skip'
CHECK = 'check'


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


def _has_content(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return not is_blank(value)


def _is_id(value: Any) -> bool:
    return _is_string(value) and value != ''


def _is_percentage(value: Any) -> bool:
    return is_number(value) and 0 <= value <= 100


def _is_full_name(value: Any) -> bool:
    return _is_string(value) and len(value.strip()) >= 2


def _is_description(value: Any) -> bool:
    return _is_string(value) and bool(value.strip())


def _is_boolean(value: Any) -> bool:
    return isinstance(value, bool)


# ============================================================================
# FIELDS AND BASE SCHEMA
# ============================================================================

class RuleField(fields.Raw):
    """
    Raw JSON value checked by one field-level predicate.

    ``blank`` decides what happens to null, ``""``, ``false`` and ``0``:
    ``'required'`` reports them with the required message, ``'skip'`` lets
    them through unchecked and ``'check'`` hands them to the predicate like
    any other value. The value itself is never converted.

    Example:
        vin = RuleField(is_valid_vin, 'VIN must be between 10 and 17 characters',
                        blank=REQUIRED, required_message='VIN is required', required=True)
    """

    def __init__(
        self,
        rule: Optional[Callable[[Any], bool]] = None,
        message: str = 'Invalid value.',
        blank: str = CHECK,
        required_message: Optional[str] = None,
        message_args: Optional[Callable[[], Dict[str, Any]]] = None,
        **kwargs: Any,
    ):
        self.rule = rule
        self.blank = blank
        self.message_args = message_args

        required_message = required_message or message
        error_messages = {
            'invalid': message,
            'required': required_message,
            'null': required_message if blank == REQUIRED else message,
        }
        error_messages.update(kwargs.pop('error_messages', None) or {})
        super().__init__(allow_none=(blank == SKIP), error_messages=error_messages, **kwargs)

    def make_error(self, key: str, **kwargs: Any) -> ValidationError:
        if self.message_args is not None:
            kwargs = {**self.message_args(), **kwargs}
        return super().make_error(key, **kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        if is_blank(value):
            if self.blank == REQUIRED:
                raise self.make_error('required')
            if self.blank == SKIP:
                return value
        if self.rule is not None and not self.rule(value):
            raise self.make_error('invalid')
        return value


def flatten_messages(messages: Mapping[Any, Any], prefix_field_names: bool = False) -> List[str]:
    """
    Flatten a marshmallow error dictionary into ordered messages.

    List-field errors keyed by index become ``"<label> N: <message>"``.
    """
    flat: List[str] = []
    for field_name, field_messages in messages.items():
        if isinstance(field_messages, Mapping):
            label = COLLECTION_ITEM_LABELS.get(field_name, field_name)
            for index, item_messages in field_messages.items():
                if not isinstance(item_messages, Mapping):
                    item_messages = {SCHEMA_ERRORS_KEY: item_messages}
                prefix = f"{label} {index + 1}: "
                flat.extend(prefix + message for message in flatten_messages(item_messages))
            continue

        for message in field_messages:
            if prefix_field_names and field_name != SCHEMA_ERRORS_KEY:
                message = f"{field_name}: {message}"
            flat.append(message)
    return flat


class EntitySchema(Schema):
    """
    Base schema for request payloads.

    ``check`` is the entry point: it accepts any parsed JSON value and
    returns the flattened ``ValidationResult``. Unknown keys are ignored.
    """

    entity = 'payload'
    operation = 'validate'
    prefix_field_names = False

    class Meta:
        unknown = EXCLUDE

    def check(self, payload: Any) -> ValidationResult:
        result = ValidationResult()

        if not isinstance(payload, Mapping):
            result.add_error(NOT_AN_OBJECT_MESSAGE)
        else:
            result.extend(flatten_messages(self.validate(payload), self.prefix_field_names))

        if not result.is_valid:
            logger.debug(
                "Payload failed validation",
                entity=self.entity,
                operation=self.operation,
                error_count=len(result.errors),
            )
        return result


# ============================================================================
# VEHICLES
# ============================================================================

def _year_message_args() -> Dict[str, Any]:
    return {'max_year': max_vehicle_year()}


YEAR_MESSAGE = 'Year must be between 1900 and {max_year}'
VIN_MESSAGE = 'VIN must be between 10 and 17 characters'


class VehicleSchema(EntitySchema):
    """
    Vehicle update rules; no field is mandatory.

    Field order here is the report order. ``VehicleCreateSchema`` overrides
    the mandatory fields in place.
    """

    entity = 'vehicle'
    operation = 'update'
    prefix_field_names = True

    vin = RuleField(is_valid_vin, VIN_MESSAGE)
    year = RuleField(is_valid_year, YEAR_MESSAGE, message_args=_year_message_args)
    # Present-but-empty values would erase a required column.
    make = RuleField(_has_content, 'Make cannot be empty')
    model = RuleField(_has_content, 'Model cannot be empty')
    auction_house = RuleField(_has_content, 'Auction house cannot be empty')
    purchase_price = RuleField(is_positive_number, 'Purchase price must be positive')
    sale_price = RuleField(is_positive_number, 'Sale price must be positive')

    mileage = RuleField(is_non_negative_number, 'Mileage must be a non-negative number')
    repair_estimate = RuleField(is_non_negative_number, 'Repair estimate must be non-negative')
    estimated_total_cost = RuleField(
        is_non_negative_number, 'Estimated total cost must be non-negative'
    )

    current_status = RuleField(
        is_valid_vehicle_status, f"Invalid status. Must be one of: {VEHICLE_STATUS_LIST}"
    )

    damage_severity = RuleField(
        is_valid_damage_severity,
        f"Invalid damage severity. Must be one of: {', '.join(DAMAGE_SEVERITIES)}",
        blank=SKIP,
    )
    purchase_currency = RuleField(
        is_valid_currency, f"Invalid currency. Must be one of: {VEHICLE_CURRENCY_LIST}", blank=SKIP
    )
    sale_currency = RuleField(
        is_valid_currency, f"Invalid currency. Must be one of: {VEHICLE_CURRENCY_LIST}", blank=SKIP
    )
    sale_type = RuleField(
        is_valid_sale_type, f"Invalid sale type. Must be one of: {', '.join(SALE_TYPES)}", blank=SKIP
    )
    sale_price_includes_vat = RuleField(
        _is_boolean, 'sale_price_includes_vat must be a boolean'
    )

    @validates_schema(skip_on_field_errors=False, pass_original=True)
    def validate_sale_rules(self, data, original_data, **kwargs):
        """Local sales settle in AED; a sale price needs a sale currency."""
        errors = []
        sale_currency = original_data.get('sale_currency')
        has_currency = not is_blank(sale_currency)

        if original_data.get('sale_type') == 'local_only' and has_currency and sale_currency != 'AED':
            errors.append('Local sales must use AED currency')

        if is_positive_number(original_data.get('sale_price')) and not has_currency:
            errors.append('Sale currency is required when sale price is specified')

        if errors:
            raise ValidationError({'sale_currency': errors})


class VehicleCreateSchema(VehicleSchema):
    operation = 'create'

    class Meta(VehicleSchema.Meta):
        # Creation always starts at the initial status; the sale price is
        # only constrained through the sale rules.
        exclude = ('current_status', 'sale_price')

    vin = RuleField(
        is_valid_vin, VIN_MESSAGE, blank=REQUIRED, required_message='VIN is required', required=True
    )
    year = RuleField(
        is_valid_year,
        YEAR_MESSAGE,
        blank=REQUIRED,
        required_message='Year is required',
        message_args=_year_message_args,
        required=True,
    )
    make = RuleField(blank=REQUIRED, required_message='Make is required', required=True)
    model = RuleField(blank=REQUIRED, required_message='Model is required', required=True)
    auction_house = RuleField(
        blank=REQUIRED, required_message='Auction house is required', required=True
    )
    purchase_price = RuleField(
        is_positive_number,
        'Purchase price must be positive',
        blank=REQUIRED,
        required_message='Purchase price is required',
        required=True,
    )


class VehicleStatusUpdateSchema(EntitySchema):
    """Body of ``PATCH /api/vehicles/<id>/status``: status plus optional location and notes."""

    entity = 'vehicle_status'
    operation = 'update'

    status = RuleField(
        is_valid_vehicle_status,
        f"Invalid status. Must be one of: {VEHICLE_STATUS_LIST}",
        blank=REQUIRED,
        required_message='Status is required',
        required=True,
    )
    location = RuleField(_is_string, 'location must be a string', blank=SKIP)
    notes = RuleField(_is_string, 'notes must be a string', blank=SKIP)


# ============================================================================
# INVOICES
# ============================================================================

class LineItemSchema(Schema):
    """One invoice line item; messages are unprefixed."""

    class Meta:
        unknown = EXCLUDE

    description = RuleField(_is_description, 'Line item description is required', required=True)
    quantity = RuleField(
        is_positive_number, 'Line item quantity must be a positive number', required=True
    )
    unit_price = RuleField(
        is_non_negative_number, 'Line item unit_price must be a non-negative number', required=True
    )
    total = RuleField(
        is_non_negative_number, 'Line item total must be a non-negative number', required=True
    )
    vat_rate = RuleField(_is_percentage, 'Line item vat_rate must be between 0 and 100')

    @pre_load
    def treat_non_objects_as_empty(self, data, **kwargs):
        # A non-object item reports every required field as missing.
        return data if isinstance(data, Mapping) else {}

    @validates_schema(skip_on_field_errors=False, pass_original=True)
    def validate_line_total(self, data, original_data, **kwargs):
        if not isinstance(original_data, Mapping):
            return
        quantity = original_data.get('quantity')
        unit_price = original_data.get('unit_price')
        total = original_data.get('total')
        if is_number(quantity) and is_number(unit_price) and is_number(total):
            if not line_item_total_consistent(quantity, unit_price, total):
                raise ValidationError({'total': [LINE_ITEM_TOTAL_MESSAGE]})


def _invoice_amounts_errors(original_data: Mapping) -> List[str]:
    # Cross-check only a complete set of numeric amounts.
    amounts = [original_data.get(field) for field in AMOUNT_FIELDS]
    if all(is_number(amount) for amount in amounts):
        return check_invoice_amounts(*amounts)
    return []


class InvoiceCreateSchema(EntitySchema):
    entity = 'invoice'
    operation = 'create'

    customer_id = RuleField(_is_id, 'customer_id is required and must be a string', required=True)
    line_items = fields.List(
        fields.Nested(LineItemSchema),
        required=True,
        validate=validate.Length(min=1, error='line_items is required and must be a non-empty array'),
        error_messages={
            'required': 'line_items is required and must be a non-empty array',
            'null': 'line_items is required and must be a non-empty array',
            'invalid': 'line_items is required and must be a non-empty array',
        },
    )
    subtotal = RuleField(
        is_non_negative_number, 'subtotal is required and must be a non-negative number', required=True
    )
    vat_rate = RuleField(
        _is_percentage, 'vat_rate is required and must be between 0 and 100', required=True
    )
    vat_amount = RuleField(
        is_non_negative_number, 'vat_amount is required and must be a non-negative number', required=True
    )
    total_amount = RuleField(
        is_positive_number, 'total_amount is required and must be a positive number', required=True
    )
    currency = RuleField(
        is_valid_currency, f"currency is required and must be one of: {CURRENCY_LIST}", required=True
    )
    due_date = RuleField(
        is_valid_date_only, 'due_date is required and must be in YYYY-MM-DD format', required=True
    )
    status = RuleField(
        is_valid_invoice_status, f"status must be one of: {INVOICE_STATUS_LIST}", blank=SKIP
    )
    vehicle_id = RuleField(_is_string, 'vehicle_id must be a string', blank=SKIP)
    invoice_number = RuleField(_is_string, 'invoice_number must be a string', blank=SKIP)
    payment_terms = RuleField(_is_string, 'payment_terms must be a string', blank=SKIP)
    notes = RuleField(_is_string, 'notes must be a string', blank=SKIP)

    @validates_schema(skip_on_field_errors=False, pass_original=True)
    def validate_invoice_amounts(self, data, original_data, **kwargs):
        errors = _invoice_amounts_errors(original_data)
        if errors:
            raise ValidationError(errors)


class InvoiceUpdateSchema(EntitySchema):
    entity = 'invoice'
    operation = 'update'

    status = RuleField(
        is_valid_invoice_status, f"Invalid status. Must be one of: {INVOICE_STATUS_LIST}", blank=SKIP
    )
    customer_id = RuleField(_is_string, 'customer_id must be a string', blank=SKIP)
    vehicle_id = RuleField(_is_string, 'vehicle_id must be a string', blank=SKIP)
    subtotal = RuleField(is_non_negative_number, 'subtotal must be a non-negative number')
    vat_rate = RuleField(_is_percentage, 'vat_rate must be between 0 and 100')
    vat_amount = RuleField(is_non_negative_number, 'vat_amount must be a non-negative number')
    total_amount = RuleField(is_positive_number, 'total_amount must be a positive number')
    currency = RuleField(is_valid_currency, f"currency must be one of: {CURRENCY_LIST}", blank=SKIP)
    due_date = RuleField(is_valid_date_only, 'due_date must be in YYYY-MM-DD format', blank=SKIP)
    invoice_number = RuleField(_is_string, 'invoice_number must be a string', blank=SKIP)
    payment_terms = RuleField(_is_string, 'payment_terms must be a string', blank=SKIP)
    notes = RuleField(_is_string, 'notes must be a string', blank=SKIP)
    line_items = fields.List(
        fields.Nested(LineItemSchema),
        error_messages={
            'null': 'line_items must be an array',
            'invalid': 'line_items must be an array',
        },
    )

    @validates_schema(skip_on_field_errors=False, pass_original=True)
    def validate_invoice_amounts(self, data, original_data, **kwargs):
        errors = _invoice_amounts_errors(original_data)
        if errors:
            raise ValidationError(errors)


# ============================================================================
# CUSTOMERS
# ============================================================================

class CustomerSchema(EntitySchema):
    """
    Customer update rules: any field whose key is present is checked.

    ``CustomerCreateSchema`` requires ``full_name`` and skips blank optional
    fields instead.
    """

    entity = 'customer'
    operation = 'update'

    full_name = RuleField(_is_full_name, 'full_name must be at least 2 characters long')
    email = RuleField(is_valid_email, 'email must be a valid email address')
    phone = RuleField(is_valid_phone, 'phone must be a valid phone number with at least 8 digits')
    preferred_language = RuleField(
        is_valid_language_code, f"preferred_language must be one of: {LANGUAGE_LIST}"
    )
    date_of_birth = RuleField(is_valid_date_only, 'date_of_birth must be in YYYY-MM-DD format')
    marketing_consent = RuleField(_is_boolean, 'marketing_consent must be a boolean value')
    address = RuleField(_is_string, 'address must be a string')
    city = RuleField(_is_string, 'city must be a string')
    country = RuleField(_is_string, 'country must be a string')


class CustomerCreateSchema(CustomerSchema):
    operation = 'create'

    full_name = RuleField(
        _is_full_name, 'full_name is required and must be at least 2 characters long', required=True
    )
    email = RuleField(is_valid_email, 'email must be a valid email address', blank=SKIP)
    phone = RuleField(
        is_valid_phone, 'phone must be a valid phone number with at least 8 digits', blank=SKIP
    )
    preferred_language = RuleField(
        is_valid_language_code, f"preferred_language must be one of: {LANGUAGE_LIST}", blank=SKIP
    )
    date_of_birth = RuleField(
        is_valid_date_only, 'date_of_birth must be in YYYY-MM-DD format', blank=SKIP
    )
    address = RuleField(_is_string, 'address must be a string', blank=SKIP)
    city = RuleField(_is_string, 'city must be a string', blank=SKIP)
    country = RuleField(_is_string, 'country must be a string', blank=SKIP)


# ============================================================================
# PAYMENTS
# ============================================================================

class PaymentSchema(EntitySchema):
    """Payment update rules: present keys are checked, blank notes are skipped."""

    entity = 'payment'
    operation = 'update'

    invoice_id = RuleField(_is_id, 'invoice_id must be a non-empty string')
    amount = RuleField(is_positive_number, 'amount must be a positive number')
    currency = RuleField(is_valid_currency, f"currency must be one of: {CURRENCY_LIST}")
    payment_date = RuleField(is_valid_date_only, 'payment_date must be in YYYY-MM-DD format')
    payment_method = RuleField(
        is_valid_payment_method, f"payment_method must be one of: {PAYMENT_METHOD_LIST}"
    )
    transaction_id = RuleField(_is_string, 'transaction_id must be a string', blank=SKIP)
    notes = RuleField(_is_string, 'notes must be a string', blank=SKIP)


class PaymentCreateSchema(PaymentSchema):
    operation = 'create'

    invoice_id = RuleField(_is_id, 'invoice_id is required and must be a string', required=True)
    amount = RuleField(
        is_positive_number, 'amount is required and must be a positive number', required=True
    )
    currency = RuleField(
        is_valid_currency, f"currency is required and must be one of: {CURRENCY_LIST}", required=True
    )
    payment_date = RuleField(
        is_valid_date_only, 'payment_date is required and must be in YYYY-MM-DD format', required=True
    )
    payment_method = RuleField(
        is_valid_payment_method,
        f"payment_method is required and must be one of: {PAYMENT_METHOD_LIST}",
        required=True,
    )


# ============================================================================
# MODULE-LEVEL ENTRY POINTS
# ============================================================================

_vehicle_create = VehicleCreateSchema()
_vehicle_update = VehicleSchema()
_vehicle_status = VehicleStatusUpdateSchema()
_line_item = LineItemSchema()
_invoice_create = InvoiceCreateSchema()
_invoice_update = InvoiceUpdateSchema()
_customer_create = CustomerCreateSchema()
_customer_update = CustomerSchema()
_payment_create = PaymentCreateSchema()
_payment_update = PaymentSchema()


def validate_create_vehicle(payload: Any) -> ValidationResult:
    return _vehicle_create.check(payload)


def validate_update_vehicle(payload: Any) -> ValidationResult:
    return _vehicle_update.check(payload)


def validate_status_update(payload: Any) -> ValidationResult:
    return _vehicle_status.check(payload)


def validate_line_item(item: Any) -> ValidationResult:
    """Validate one invoice line item; messages are unprefixed."""
    return ValidationResult(flatten_messages(_line_item.validate(item)))


def validate_create_invoice(payload: Any) -> ValidationResult:
    return _invoice_create.check(payload)


def validate_update_invoice(payload: Any) -> ValidationResult:
    return _invoice_update.check(payload)


def validate_create_customer(payload: Any) -> ValidationResult:
    return _customer_create.check(payload)


def validate_update_customer(payload: Any) -> ValidationResult:
    return _customer_update.check(payload)


def validate_create_payment(payload: Any) -> ValidationResult:
    return _payment_create.check(payload)


def validate_update_payment(payload: Any) -> ValidationResult:
    return _payment_update.check(payload)


__all__ = [
    'NOT_AN_OBJECT_MESSAGE',
    'RuleField',
    'EntitySchema',
    'VehicleSchema',
    'VehicleCreateSchema',
    'VehicleStatusUpdateSchema',
    'LineItemSchema',
    'InvoiceCreateSchema',
    'InvoiceUpdateSchema',
    'CustomerSchema',
    'CustomerCreateSchema',
    'PaymentSchema',
    'PaymentCreateSchema',
    'flatten_messages',
    'validate_line_item',
    'validate_create_vehicle',
    'validate_update_vehicle',
    'validate_status_update',
    'validate_create_invoice',
    'validate_update_invoice',
    'validate_create_customer',
    'validate_update_customer',
    'validate_create_payment',
    'validate_update_payment',
]
