"""
Unit tests for service-error mapping, the error taxonomy and query-string
parsing.
"""

import pytest
from werkzeug.datastructures import MultiDict

from dealership.blueprints.schemas import (
    InvoiceFilterSchema,
    VehicleFilterSchema,
    load_query,
    parse_pagination,
)
from dealership.business.models import ServiceOutcome
from dealership.utils.exceptions import (
    ConflictError,
    ErrorKind,
    InputMalformedError,
    InternalError,
    NotFoundError,
    ValidationFailedError,
)
from dealership.utils.request import EMPTY_BODY_MESSAGE, INVALID_JSON_MESSAGE, parse_json_text
from dealership.utils.response import classify_service_error, ensure_valid, map_service_error
from dealership.utils.validators import ValidationResult

pytestmark = [pytest.mark.unit]


class TestClassifyServiceError:

    @pytest.mark.parametrize('error, kind', [
        ('Vehicle not found', ErrorKind.NOT_FOUND),
        ('A vehicle with VIN 1HGCM82633A004352 already exists', ErrorKind.CONFLICT),
        ('Cannot delete customer with existing invoices', ErrorKind.CONFLICT),
        ('Deadlock detected', ErrorKind.INTERNAL),
        ('', ErrorKind.INTERNAL),
        (None, ErrorKind.INTERNAL),
    ])
    def test_phrases(self, error, kind):
        assert classify_service_error(error) == kind

    def test_matching_is_case_sensitive(self):
        assert classify_service_error('Vehicle Not Found') == ErrorKind.INTERNAL
        assert classify_service_error('cannot delete vehicle') == ErrorKind.INTERNAL


class TestMapServiceError:

    def test_not_found_passes_message_through(self):
        error = map_service_error(ServiceOutcome.fail('Vehicle not found'), operation='vehicle_get')

        assert isinstance(error, NotFoundError)
        assert error.http_status == 404
        assert error.message == 'Vehicle not found'

    def test_conflict_passes_message_through(self):
        message = 'A vehicle with VIN 1HGCM82633A004352 already exists'
        error = map_service_error(ServiceOutcome.fail(message))

        assert isinstance(error, ConflictError)
        assert error.http_status == 409
        assert error.message == message

    def test_internal_message_is_sanitized(self):
        outcome = ServiceOutcome.fail('login failed password:hunter2 for user:app@db')
        error = map_service_error(outcome)

        assert isinstance(error, InternalError)
        assert error.http_status == 500
        assert 'hunter2' not in error.message
        assert 'password' not in error.message.lower()
        assert 'hunter2' in error.raw_message

    def test_missing_error_uses_default_message(self):
        error = map_service_error(ServiceOutcome(success=False), 'Failed to fetch vehicles')
        assert isinstance(error, InternalError)
        assert error.message == 'Failed to fetch vehicles'

    def test_structured_kind_wins_over_text(self):
        outcome = ServiceOutcome.fail('Record missing', ErrorKind.NOT_FOUND)
        assert isinstance(map_service_error(outcome), NotFoundError)

        outcome = ServiceOutcome.fail('row not found in replica', ErrorKind.INTERNAL)
        assert isinstance(map_service_error(outcome), InternalError)

    def test_accepts_plain_mappings(self):
        error = map_service_error({'success': False, 'error': 'Customer not found'})
        assert isinstance(error, NotFoundError)


class TestEnsureValid:

    def test_valid_result_passes(self):
        ensure_valid(ValidationResult(), 'vehicle')

    def test_invalid_result_raises_with_joined_details(self):
        result = ValidationResult(['vin: VIN is required', 'model: Model is required'])

        with pytest.raises(ValidationFailedError) as exc_info:
            ensure_valid(result, 'vehicle')

        error = exc_info.value
        assert error.http_status == 400
        assert error.to_dict() == {
            'success': False,
            'error': 'Validation failed',
            'details': 'vin: VIN is required, model: Model is required',
        }


class TestParseJsonText:

    @pytest.mark.parametrize('text', ['', '   ', '\n'])
    def test_empty_body(self, text):
        with pytest.raises(InputMalformedError) as exc_info:
            parse_json_text(text)
        assert exc_info.value.message == EMPTY_BODY_MESSAGE

    @pytest.mark.parametrize('text', ['{bad json', "{'single': 'quotes'}", '{"a": NaN}', 'Infinity'])
    def test_invalid_json(self, text):
        with pytest.raises(InputMalformedError) as exc_info:
            parse_json_text(text)
        assert exc_info.value.message == INVALID_JSON_MESSAGE

    def test_valid_json_of_any_type(self):
        assert parse_json_text('{"vin": "X"}') == {'vin': 'X'}
        assert parse_json_text('[1, 2]') == [1, 2]


class TestPaginationParsing:

    @pytest.mark.parametrize('args, expected', [
        ({}, {'page': 1, 'limit': 20}),
        ({'page': 'invalid'}, {'page': 1, 'limit': 20}),
        ({'page': '3', 'limit': '10'}, {'page': 3, 'limit': 10}),
        ({'page': '2abc', 'limit': '15xyz'}, {'page': 2, 'limit': 15}),
        ({'limit': '150'}, {'page': 1, 'limit': 100}),
        ({'limit': '0'}, {'page': 1, 'limit': 20}),
        ({'page': '-4', 'limit': '-5'}, {'page': 1, 'limit': 1}),
    ])
    def test_pagination_defaults_and_clamping(self, args, expected):
        assert parse_pagination(MultiDict(args)) == expected

    def test_numbers_too_long_to_convert_fall_back_to_defaults(self):
        huge = '9' * 5000
        assert parse_pagination(MultiDict({'page': huge, 'limit': huge})) == {'page': 1, 'limit': 20}


class TestFilterSchemas:

    def test_vehicle_filters(self):
        filters = load_query(VehicleFilterSchema, MultiDict({
            'make': 'Toyota',
            'year_min': '2015',
            'price_max': '25000.50usd',
            'is_public': 'true',
            'unknown_param': 'ignored',
            'page': '2',
        }))

        assert filters == {
            'make': 'Toyota',
            'year_min': 2015,
            'price_max': 25000.5,
            'is_public': True,
        }

    def test_unparsable_numbers_and_blanks_are_dropped(self):
        filters = load_query(VehicleFilterSchema, MultiDict({
            'year_min': 'recent',
            'search': '',
            'is_public': 'yes',
        }))
        assert filters == {'is_public': False}

    def test_invoice_date_filters_keep_the_date_part(self):
        filters = load_query(InvoiceFilterSchema, MultiDict({
            'created_from': '2024-01-01T00:00:00Z',
            'due_to': 'soon',
            'overdue_only': 'true',
        }))
        assert filters == {'created_from': '2024-01-01', 'overdue_only': True}

    def test_oversized_numeric_filters_are_dropped(self):
        filters = load_query(VehicleFilterSchema, MultiDict({
            'year_min': '9' * 5000,
            'price_max': '9' * 400,
            'price_min': '1e999',
            'make': 'Nissan',
        }))
        assert filters == {'make': 'Nissan'}
