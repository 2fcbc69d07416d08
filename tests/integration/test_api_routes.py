"""
Integration tests for the HTTP surface.

Requests go through the full application: request logging middleware,
authentication, body parsing, validation, the in-memory services and the
JSON error handlers.
"""

import json

import pytest

from dealership import create_app
from dealership.business.models import ServiceOutcome
from dealership.business.services import Services, VehicleService, create_in_memory_services

pytestmark = [pytest.mark.integration]


def _create_customer(client, headers, payload):
    response = client.post('/api/customers', json=payload, headers=headers)
    assert response.status_code == 201
    return response.get_json()['data']


def _create_vehicle(client, headers, payload):
    response = client.post('/api/vehicles', json=payload, headers=headers)
    assert response.status_code == 201
    return response.get_json()['data']


class TestVehicleEndpoints:

    def test_create_vehicle(self, client, auth_headers, vehicle_payload):
        response = client.post('/api/vehicles', json=vehicle_payload, headers=auth_headers())

        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        assert body['data']['vin'] == vehicle_payload['vin']
        assert body['data']['current_status'] == 'auction_won'
        assert body['data']['created_by'] == 'user-1'

    def test_missing_fields_are_reported_together(self, client, auth_headers):
        response = client.post(
            '/api/vehicles', json={'year': 2021, 'make': 'Honda'}, headers=auth_headers()
        )

        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert body['error'] == 'Validation failed'
        for field in ('vin', 'model', 'auction_house', 'purchase_price'):
            assert field in body['details']
        assert 'make' not in body['details']

    def test_duplicate_vin_is_a_conflict(self, client, auth_headers, vehicle_payload):
        _create_vehicle(client, auth_headers(), vehicle_payload)

        response = client.post('/api/vehicles', json=vehicle_payload, headers=auth_headers())

        assert response.status_code == 409
        assert response.get_json() == {
            'success': False,
            'error': f"A vehicle with VIN {vehicle_payload['vin']} already exists",
        }

    def test_public_list_with_pagination_fallbacks(self, client, auth_headers, vehicle_payload):
        _create_vehicle(client, auth_headers(), vehicle_payload)

        response = client.get('/api/vehicles?page=invalid&limit=150')

        assert response.status_code == 200
        assert response.headers['Cache-Control'] == 'public, max-age=60, stale-while-revalidate=300'
        body = response.get_json()
        assert body['pagination'] == {'page': 1, 'limit': 100, 'total': 1, 'pages': 1}
        assert len(body['data']) == 1

    def test_oversized_numeric_query_values_are_ignored(self, client, auth_headers, vehicle_payload):
        _create_vehicle(client, auth_headers(), vehicle_payload)
        huge = '9' * 5000

        response = client.get(f"/api/vehicles?page={huge}&year_min={huge}&price_max=1e999")

        assert response.status_code == 200
        body = response.get_json()
        assert body['pagination']['page'] == 1
        assert len(body['data']) == 1

    def test_public_detail_and_not_found(self, client, auth_headers, vehicle_payload):
        vehicle = _create_vehicle(client, auth_headers(), vehicle_payload)

        response = client.get(f"/api/vehicles/{vehicle['id']}")
        assert response.status_code == 200
        assert response.headers['Cache-Control'] == 'public, max-age=300, stale-while-revalidate=600'

        response = client.get('/api/vehicles/does-not-exist')
        assert response.status_code == 404
        assert response.get_json() == {'success': False, 'error': 'Vehicle not found'}

    def test_blank_id_is_rejected(self, client):
        response = client.get('/api/vehicles/%20')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Vehicle ID is required'

    def test_update_and_delete(self, client, auth_headers, vehicle_payload):
        vehicle = _create_vehicle(client, auth_headers(), vehicle_payload)

        response = client.put(
            f"/api/vehicles/{vehicle['id']}", json={'mileage': 43000}, headers=auth_headers()
        )
        assert response.status_code == 200
        assert response.get_json()['data']['mileage'] == 43000

        response = client.put(
            f"/api/vehicles/{vehicle['id']}", json={'year': 1800}, headers=auth_headers()
        )
        assert response.status_code == 400

        response = client.delete(f"/api/vehicles/{vehicle['id']}", headers=auth_headers())
        assert response.status_code == 200
        assert response.get_json() == {'success': True, 'message': 'Vehicle deleted successfully'}

    def test_update_cannot_null_out_status_or_make(self, client, auth_headers, vehicle_payload):
        vehicle = _create_vehicle(client, auth_headers(), vehicle_payload)

        response = client.put(
            f"/api/vehicles/{vehicle['id']}",
            json={'current_status': None, 'make': None},
            headers=auth_headers(),
        )

        assert response.status_code == 400
        details = response.get_json()['details']
        assert 'make: Make cannot be empty' in details
        assert 'current_status: Invalid status' in details

        stored = client.get(f"/api/vehicles/{vehicle['id']}").get_json()['data']
        assert stored['make'] == 'Honda'
        assert stored['current_status'] == 'auction_won'

    def test_status_tracking(self, client, auth_headers, vehicle_payload):
        vehicle = _create_vehicle(client, auth_headers(), vehicle_payload)
        url = f"/api/vehicles/{vehicle['id']}/status"

        response = client.patch(url, json={'status': 'shipped', 'notes': 'On vessel'}, headers=auth_headers())
        assert response.status_code == 200
        assert response.get_json()['message'] == 'Vehicle status updated successfully'

        response = client.patch(url, json={'status': 'flying'}, headers=auth_headers())
        assert response.status_code == 400

        response = client.get(url, headers=auth_headers('viewer'))
        history = response.get_json()['data']
        assert [entry['status'] for entry in history] == ['shipped', 'auction_won']
        assert history[0]['notes'] == 'On vessel'

    def test_statistics_require_permission(self, client, auth_headers, vehicle_payload):
        _create_vehicle(client, auth_headers(), vehicle_payload)

        assert client.get('/api/vehicles/stats').status_code == 401

        response = client.get('/api/vehicles/stats', headers=auth_headers('viewer'))
        assert response.status_code == 200
        assert response.get_json()['data']['byStatus'] == {'auction_won': 1}


class TestRequestErrors:

    def test_unauthenticated_write(self, client, vehicle_payload):
        response = client.post('/api/vehicles', json=vehicle_payload)

        assert response.status_code == 401
        assert response.get_json() == {'success': False, 'error': 'Authentication required'}

    def test_invalid_token(self, client, vehicle_payload):
        response = client.post(
            '/api/vehicles', json=vehicle_payload, headers={'Authorization': 'Bearer not-a-token'}
        )
        assert response.status_code == 401

    def test_insufficient_permissions(self, client, auth_headers, vehicle_payload):
        response = client.post('/api/vehicles', json=vehicle_payload, headers=auth_headers('viewer'))

        assert response.status_code == 403
        assert response.get_json() == {'success': False, 'error': 'Insufficient permissions'}

    def test_permission_is_checked_before_the_body(self, client, auth_headers):
        response = client.post('/api/vehicles', data='{broken', headers=auth_headers('viewer'))
        assert response.status_code == 403

    def test_empty_body(self, client, auth_headers):
        response = client.post('/api/vehicles', data='', headers=auth_headers())

        assert response.status_code == 400
        assert response.get_json() == {'success': False, 'error': 'Request body is required'}

    def test_invalid_json(self, client, auth_headers):
        response = client.post(
            '/api/vehicles', data='{"vin": ', content_type='application/json', headers=auth_headers()
        )

        assert response.status_code == 400
        assert response.get_json() == {'success': False, 'error': 'Invalid JSON in request body'}

    def test_body_must_be_an_object(self, client, auth_headers):
        response = client.post('/api/customers', data='[1, 2]', headers=auth_headers())

        assert response.status_code == 400
        assert response.get_json() == {
            'success': False,
            'error': 'Validation failed',
            'details': 'Request body must be a JSON object',
        }

    def test_unknown_route_and_method(self, client):
        response = client.get('/api/unknown')
        assert response.status_code == 404
        assert response.get_json() == {'success': False, 'error': 'Resource not found'}

        response = client.patch('/api/vehicles')
        assert response.status_code == 405
        assert response.get_json() == {'success': False, 'error': 'Method not allowed'}

    def test_request_id_is_echoed(self, client):
        response = client.get('/api/health', headers={'X-Request-ID': 'req-123'})
        assert response.headers['X-Request-ID'] == 'req-123'

        response = client.get('/api/health')
        assert len(response.headers['X-Request-ID']) == 36


class TestInvoiceEndpoints:

    def test_create_invoice(self, client, auth_headers, customer_payload, invoice_payload):
        customer = _create_customer(client, auth_headers(), customer_payload)
        invoice_payload['customer_id'] = customer['id']

        response = client.post('/api/invoices', json=invoice_payload, headers=auth_headers('finance_manager'))

        assert response.status_code == 201
        assert response.get_json()['data']['invoice_number'] == 'INV-000001'

    def test_vat_mismatch(self, client, auth_headers, invoice_payload):
        invoice_payload.update({'customer_id': 'c-1', 'vat_amount': 100, 'total_amount': 1200})

        response = client.post('/api/invoices', json=invoice_payload, headers=auth_headers())

        assert response.status_code == 400
        assert 'calculation' in response.get_json()['details']

    def test_unknown_customer(self, client, auth_headers, invoice_payload):
        invoice_payload['customer_id'] = 'ghost'
        response = client.post('/api/invoices', json=invoice_payload, headers=auth_headers())

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Customer not found'

    def test_listing_requires_authentication_only(self, client, auth_headers):
        assert client.get('/api/invoices').status_code == 401

        response = client.get('/api/invoices?overdue_only=true', headers=auth_headers('viewer'))
        assert response.status_code == 200
        assert response.get_json()['pagination'] == {'page': 1, 'limit': 20, 'total': 0, 'pages': 0}

    def test_sales_agent_cannot_create(self, client, auth_headers, invoice_payload):
        invoice_payload['customer_id'] = 'c-1'
        response = client.post('/api/invoices', json=invoice_payload, headers=auth_headers('sales_agent'))
        assert response.status_code == 403

    def test_update_and_delete(self, client, auth_headers, customer_payload, invoice_payload):
        customer = _create_customer(client, auth_headers(), customer_payload)
        invoice_payload['customer_id'] = customer['id']
        invoice = client.post('/api/invoices', json=invoice_payload, headers=auth_headers()).get_json()['data']

        response = client.put(
            f"/api/invoices/{invoice['id']}", json={'status': 'sent'}, headers=auth_headers()
        )
        assert response.get_json()['data']['status'] == 'sent'

        response = client.delete(f"/api/invoices/{invoice['id']}", headers=auth_headers())
        assert response.get_json()['message'] == 'Invoice deleted successfully'

        response = client.get(f"/api/invoices/{invoice['id']}", headers=auth_headers())
        assert response.status_code == 404

    def test_statistics(self, client, auth_headers, customer_payload, invoice_payload):
        customer = _create_customer(client, auth_headers(), customer_payload)
        invoice_payload['customer_id'] = customer['id']
        client.post('/api/invoices', json=invoice_payload, headers=auth_headers())

        response = client.get('/api/invoices/stats', headers=auth_headers('viewer'))

        assert response.status_code == 200
        assert response.get_json()['data']['totalValue'] == {'AED': 1050.0}


class TestPaymentEndpoints:

    @pytest.fixture
    def invoice(self, client, auth_headers, customer_payload, invoice_payload):
        customer = _create_customer(client, auth_headers(), customer_payload)
        invoice_payload['customer_id'] = customer['id']
        response = client.post('/api/invoices', json=invoice_payload, headers=auth_headers())
        assert response.status_code == 201
        return response.get_json()['data']

    @staticmethod
    def _payment(invoice_id, amount, **extra):
        payload = {
            'invoice_id': invoice_id,
            'amount': amount,
            'currency': 'AED',
            'payment_date': '2024-06-15',
            'payment_method': 'bank_transfer',
        }
        payload.update(extra)
        return payload

    def test_recording_payments_updates_invoice_status(self, client, auth_headers, invoice):
        headers = auth_headers('finance_manager')

        response = client.post('/api/payments', json=self._payment(invoice['id'], 300), headers=headers)
        assert response.status_code == 201
        payment = response.get_json()['data']
        assert payment['invoice']['status'] == 'partially_paid'

        client.post('/api/payments', json=self._payment(invoice['id'], 750), headers=headers)
        stored = client.get(f"/api/invoices/{invoice['id']}", headers=headers).get_json()['data']
        assert stored['status'] == 'fully_paid'

        response = client.delete(f"/api/payments/{payment['id']}", headers=headers)
        assert response.get_json()['message'] == 'Payment deleted successfully'
        stored = client.get(f"/api/invoices/{invoice['id']}", headers=headers).get_json()['data']
        assert stored['status'] == 'partially_paid'

    def test_unknown_invoice(self, client, auth_headers):
        response = client.post('/api/payments', json=self._payment('ghost', 10), headers=auth_headers())

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Invoice not found'

    def test_unknown_payment(self, client, auth_headers):
        response = client.get('/api/payments/missing', headers=auth_headers())

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Payment not found'

    def test_validation(self, client, auth_headers, invoice):
        payload = self._payment(invoice['id'], -5, currency='EUR')

        response = client.post('/api/payments', json=payload, headers=auth_headers())

        assert response.status_code == 400
        details = response.get_json()['details']
        assert 'amount is required and must be a positive number' in details
        assert 'currency is required and must be one of: AED, USD, CAD' in details

        response = client.put('/api/payments/p-1', json={'payment_method': 'barter'}, headers=auth_headers())
        assert response.status_code == 400

    def test_update(self, client, auth_headers, invoice):
        created = client.post(
            '/api/payments', json=self._payment(invoice['id'], 300), headers=auth_headers()
        ).get_json()['data']

        response = client.put(
            f"/api/payments/{created['id']}", json={'amount': 1050, 'notes': 'Corrected'}, headers=auth_headers()
        )

        assert response.status_code == 200
        assert response.get_json()['data']['invoice']['status'] == 'fully_paid'
        assert response.get_json()['data']['notes'] == 'Corrected'

    @pytest.mark.parametrize('role', ['viewer', 'sales_agent'])
    def test_roles_without_finance_access(self, client, auth_headers, role):
        assert client.get('/api/payments', headers=auth_headers(role)).status_code == 403
        assert client.get('/api/payments/stats', headers=auth_headers(role)).status_code == 403

    def test_manager_can_read_but_not_record(self, client, auth_headers, invoice):
        headers = auth_headers('manager')

        assert client.get('/api/payments', headers=headers).status_code == 200
        response = client.post('/api/payments', json=self._payment(invoice['id'], 10), headers=headers)
        assert response.status_code == 403

    def test_listing_summary_and_statistics(self, client, auth_headers, invoice):
        headers = auth_headers('finance_manager')
        client.post('/api/payments', json=self._payment(invoice['id'], 210), headers=headers)
        client.post(
            '/api/payments',
            json=self._payment(invoice['id'], 105, payment_method='cash', payment_date='2024-06-20'),
            headers=headers,
        )

        response = client.get('/api/payments?payment_method=cash', headers=headers)
        assert [p['amount'] for p in response.get_json()['data']] == [105]
        assert response.get_json()['pagination']['total'] == 1

        summary = client.get(f"/api/payments/invoices/{invoice['id']}/summary", headers=headers).get_json()['data']
        assert summary['total_paid'] == 315
        assert summary['payment_percentage'] == 30.0

        stats = client.get('/api/payments/stats', headers=headers).get_json()['data']
        assert stats['totalValue'] == {'AED': 315.0}
        assert stats['byMethod']['counts'] == {'bank_transfer': 1, 'cash': 1}

    def test_invoice_with_payments_cannot_be_deleted(self, client, auth_headers, invoice):
        client.post('/api/payments', json=self._payment(invoice['id'], 10), headers=auth_headers())

        response = client.delete(f"/api/invoices/{invoice['id']}", headers=auth_headers())

        assert response.status_code == 409
        assert response.get_json()['error'] == 'Cannot delete invoice with existing payments'


class TestCustomerEndpoints:

    def test_customer_lifecycle(self, client, auth_headers, customer_payload):
        customer = _create_customer(client, auth_headers('sales_agent'), customer_payload)

        response = client.get('/api/customers?search=layla', headers=auth_headers('viewer'))
        assert [c['id'] for c in response.get_json()['data']] == [customer['id']]

        response = client.put(
            f"/api/customers/{customer['id']}", json={'city': 'Sharjah'}, headers=auth_headers('sales_agent')
        )
        assert response.get_json()['data']['city'] == 'Sharjah'

        response = client.delete(f"/api/customers/{customer['id']}", headers=auth_headers('sales_agent'))
        assert response.status_code == 403

        response = client.delete(f"/api/customers/{customer['id']}", headers=auth_headers('manager'))
        assert response.get_json() == {'success': True, 'message': 'Customer deleted successfully'}

    def test_duplicate_email(self, client, auth_headers, customer_payload):
        _create_customer(client, auth_headers(), customer_payload)
        response = client.post('/api/customers', json=customer_payload, headers=auth_headers())

        assert response.status_code == 409
        assert response.get_json()['error'] == 'A customer with email layla@example.com already exists'

    def test_delete_with_invoices_is_a_conflict(self, client, auth_headers, customer_payload, invoice_payload):
        customer = _create_customer(client, auth_headers(), customer_payload)
        invoice_payload['customer_id'] = customer['id']
        client.post('/api/invoices', json=invoice_payload, headers=auth_headers())

        response = client.delete(f"/api/customers/{customer['id']}", headers=auth_headers())

        assert response.status_code == 409
        assert response.get_json()['error'] == 'Cannot delete customer with existing invoices'

    def test_invalid_update(self, client, auth_headers, customer_payload):
        customer = _create_customer(client, auth_headers(), customer_payload)
        response = client.put(
            f"/api/customers/{customer['id']}", json={'phone': '12'}, headers=auth_headers()
        )

        assert response.status_code == 400
        assert response.get_json()['details'] == 'phone must be a valid phone number with at least 8 digits'


class TestExpenseAndHealthEndpoints:

    def test_expense_statistics(self, client, services, auth_headers):
        services.expenses.create({'amount': 100, 'currency': 'USD', 'category': 'shipping', 'date': '2024-06-01'})
        services.expenses.create({'amount': 10, 'currency': 'AED', 'category': 'fees', 'date': '2024-05-01'})

        response = client.get('/api/expenses/stats?date_from=2024-06-01', headers=auth_headers('finance_manager'))

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['count'] == 1
        assert data['total'] == pytest.approx(367)

        assert client.get('/api/expenses/stats', headers=auth_headers('sales_agent')).status_code == 403

    def test_health(self, client):
        response = client.get('/api/health')

        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'healthy'
        assert body['service'] == 'dealership-api'

    def test_metrics(self, client):
        client.get('/api/health')
        response = client.get('/api/metrics')

        assert response.status_code == 200
        assert response.content_type.startswith('text/plain')
        assert b'dealership_api_requests_total' in response.data


class FailingVehicleService(VehicleService):
    """Vehicle service whose listing fails like a misconfigured database."""

    def get_all(self, filters=None, page=1, limit=20):
        return ServiceOutcome.fail(
            'connect failed: connection string "postgres://app:pw@db/cars" password:hunter2 rejected'
        )

    def get_by_id(self, vehicle_id):
        raise KeyError('unexpected')


class TestInternalErrors:

    @pytest.fixture
    def failing_client(self, store):
        base = create_in_memory_services(store)
        services = Services(
            vehicles=FailingVehicleService(store),
            customers=base.customers,
            invoices=base.invoices,
            expenses=base.expenses,
            payments=base.payments,
        )
        return create_app('testing', services=services).test_client()

    def test_service_failure_is_sanitized(self, failing_client):
        response = failing_client.get('/api/vehicles')

        assert response.status_code == 500
        body = response.get_json()
        assert body['success'] is False
        text = json.dumps(body).lower()
        assert 'hunter2' not in text
        assert 'postgres' not in text
        assert 'password' not in text
        assert 'connection string' not in text

    def test_unhandled_exception(self, failing_client):
        response = failing_client.get('/api/vehicles/v-1')

        assert response.status_code == 500
        assert response.get_json() == {'success': False, 'error': 'Internal server error'}


class TestApplicationFactory:

    def test_production_requires_jwt_secret(self):
        with pytest.raises(ValueError):
            create_app('production', JWT_SECRET_KEY=None)

    def test_unknown_environment(self):
        with pytest.raises(ValueError):
            create_app('staging-eu')
