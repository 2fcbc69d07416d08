"""
factory_boy builders for request payloads.

Factories produce plain dictionaries shaped like the JSON bodies clients send,
with fuzzy values spread across each field's valid range: VIN lengths from 10
to 17, model years from 1900 to next year, amounts with cent precision. Every
default build is a payload the API accepts; traits produce the specific
invalid variants the tests need.

Example:
    payload = VehicleFactory()
    local = VehicleFactory(local_sale=True)
    broken = LineItemFactory(inconsistent=True)
"""

import string
import uuid
from datetime import date

import factory
from factory import LazyAttribute, LazyFunction, Trait
from factory.fuzzy import FuzzyChoice, FuzzyDate, FuzzyDecimal, FuzzyInteger
from factory.random import randgen

from dealership.utils.validators import (
    MAX_VIN_LENGTH,
    MIN_VEHICLE_YEAR,
    MIN_VIN_LENGTH,
    SUPPORTED_CURRENCIES,
    max_vehicle_year,
)

VIN_CHARACTERS = string.ascii_uppercase.replace('I', '').replace('O', '').replace('Q', '') + string.digits


def _vin(length: int) -> str:
    return ''.join(randgen.choice(VIN_CHARACTERS) for _ in range(length))


class VehicleFactory(factory.DictFactory):
    """Create-vehicle payloads."""

    class Params:
        vin_length = FuzzyInteger(MIN_VIN_LENGTH, MAX_VIN_LENGTH)
        price = FuzzyDecimal(500, 150000, precision=2)

        local_sale = Trait(
            sale_type='local_only',
            sale_currency='AED',
            sale_price=LazyAttribute(lambda o: round(float(o.price) * 1.25, 2)),
        )
        export_sale = Trait(
            sale_type='export_only',
            sale_currency=FuzzyChoice(['USD', 'CAD', 'AED']),
            sale_price=LazyAttribute(lambda o: round(float(o.price) * 1.4, 2)),
        )

    vin = LazyAttribute(lambda o: _vin(o.vin_length))
    year = FuzzyInteger(MIN_VEHICLE_YEAR, max_vehicle_year())
    make = FuzzyChoice(['Toyota', 'Nissan', 'Honda', 'Lexus', 'Ford', 'Mercedes-Benz'])
    model = FuzzyChoice(['Camry', 'Patrol', 'Accord', 'LX 600', 'F-150', 'G 63'])
    auction_house = FuzzyChoice(['Copart', 'IAA', 'Manheim'])
    purchase_price = LazyAttribute(lambda o: float(o.price))
    purchase_currency = FuzzyChoice(['USD', 'CAD', 'AED'])
    mileage = FuzzyInteger(0, 300000)
    damage_severity = FuzzyChoice(['minor', 'moderate', 'major', 'total_loss'])


class LineItemFactory(factory.DictFactory):
    """Invoice line items whose total matches quantity × unit_price."""

    class Params:
        price = FuzzyDecimal(1, 5000, precision=2)
        drift = 0

        # Off by at least five cents, well beyond the one-cent tolerance.
        inconsistent = Trait(
            drift=FuzzyDecimal(0.05, 500, precision=2),
        )

    description = FuzzyChoice(['Vehicle sale', 'Shipping', 'Customs clearance', 'Detailing'])
    quantity = FuzzyInteger(1, 10)
    unit_price = LazyAttribute(lambda o: float(o.price))
    total = LazyAttribute(lambda o: round(o.quantity * o.unit_price + float(o.drift), 2))


class InvoiceFactory(factory.DictFactory):
    """Create-invoice payloads with VAT and totals derived from the line items."""

    class Params:
        item_count = FuzzyInteger(1, 5)
        due = FuzzyDate(date(2024, 1, 1), date(2026, 12, 31))

    customer_id = LazyFunction(lambda: str(uuid.uuid4()))
    line_items = LazyAttribute(lambda o: LineItemFactory.build_batch(o.item_count))
    subtotal = LazyAttribute(lambda o: round(sum(item['total'] for item in o.line_items), 2))
    vat_rate = FuzzyChoice([0, 5, 10, 20])
    vat_amount = LazyAttribute(lambda o: round(o.subtotal * o.vat_rate / 100, 2))
    total_amount = LazyAttribute(lambda o: round(o.subtotal + o.vat_amount, 2))
    currency = FuzzyChoice(SUPPORTED_CURRENCIES)
    due_date = LazyAttribute(lambda o: o.due.isoformat())


__all__ = [
    'VehicleFactory',
    'LineItemFactory',
    'InvoiceFactory',
]
