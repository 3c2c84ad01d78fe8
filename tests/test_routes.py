"""HTTP-level tests: sign-in, role gating, JSON APIs and the public tracking page."""

import pytest

from models.order import LaundryOrder, update_order_status
from models.alert import create_alert
from tests.conftest import login, make_order

# ---------------------------------------------------------------------------
# Authentication and role gating
# ---------------------------------------------------------------------------


class TestAuth:
    def test_index_redirects_to_login(self, client):
        response = client.get('/')
        assert response.status_code == 302
        assert '/auth/login' in response.headers['Location']

    def test_login_page_renders(self, client):
        assert client.get('/auth/login').status_code == 200

    def test_bad_password(self, client, staff):
        response = client.post('/auth/login', data={'email': staff.email, 'password': 'nope'})
        assert response.status_code == 200
        assert b'Invalid email or password' in response.data

    def test_staff_lands_on_staff_dashboard(self, client, staff):
        response = login(client, staff)
        assert response.headers['Location'].endswith('/staff/')

    def test_admin_lands_on_admin_dashboard(self, client, admin):
        response = login(client, admin)
        assert response.headers['Location'].endswith('/admin/')

    def test_inactive_user_rejected(self, client, staff):
        staff.is_active = False
        response = client.post('/auth/login', data={'email': staff.email, 'password': 'password123'})
        assert response.status_code == 200

    def test_protected_page_requires_login(self, client):
        response = client.get('/orders/')
        assert response.status_code == 302
        assert '/auth/login' in response.headers['Location']


class TestRoleGating:
    @pytest.mark.parametrize('path', ['/admin/', '/admin/users', '/admin/pricing', '/admin/audit-log',
                                      '/admin/analytics'])
    def test_staff_redirected_from_admin_pages(self, staff_client, path):
        response = staff_client.get(path)
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/staff/')

    def test_staff_gets_403_from_admin_api(self, staff_client):
        response = staff_client.get('/admin/api/users')
        assert response.status_code == 403
        assert response.get_json()['success'] is False

    @pytest.mark.parametrize('path', ['/admin/', '/admin/users', '/admin/pricing', '/admin/audit-log',
                                      '/admin/analytics', '/staff/', '/orders/', '/customers/'])
    def test_admin_pages_render(self, admin_client, customer, path):
        assert admin_client.get(path).status_code == 200

    @pytest.mark.parametrize('path', ['/staff/', '/orders/', '/orders/new', '/customers/'])
    def test_staff_pages_render(self, staff_client, customer, path):
        assert staff_client.get(path).status_code == 200

    def test_dashboard_shows_alerts(self, admin_client):
        create_alert('overdue_orders', 'critical', 'Overdue Orders', '2 order(s) are overdue.')
        assert b'Overdue Orders' in admin_client.get('/admin/').data


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class TestOrderPages:
    def test_create_via_form(self, staff_client, customer, outbox):
        response = staff_client.post('/orders/new', data={
            'customer_id': customer.id,
            'clothes': 'y',
            'notes': 'no bleach',
        })
        assert response.status_code == 302
        order = LaundryOrder.query.one()
        assert order.notes == 'no bleach'
        assert len(outbox) == 1

    def test_detail_renders(self, staff_client, staff, customer):
        order = make_order(staff, customer)
        response = staff_client.get(f'/orders/{order.id}')
        assert response.status_code == 200
        assert order.order_id.encode() in response.data

    def test_status_form(self, staff_client, staff, customer, outbox):
        order = make_order(staff, customer)
        staff_client.post(f'/orders/{order.id}/status', data={'status': 'in-progress'})
        staff_client.post(f'/orders/{order.id}/status', data={'status': 'ready', 'clothes_weight': '2'})
        assert order.status == 'ready'
        assert order.total_price == 60.0
        assert [m['Subject'] for m in outbox][-1].startswith('Your Laundry is Ready')

    def test_complete_and_pay_form(self, staff_client, staff, customer):
        order = make_order(staff, customer)
        update_order_status(staff, order.id, 'in-progress')
        update_order_status(staff, order.id, 'ready', weights={'clothes': 1})
        staff_client.post(f'/orders/{order.id}/status', data={'status': 'completed', 'mark_paid': 'y'})
        assert order.status == 'completed'
        assert order.is_paid()


class TestOrderApi:
    def test_create(self, staff_client, customer, outbox):
        response = staff_client.post('/orders/api', json={
            'customer_id': customer.id,
            'services': {'blankets_light': True},
            'expected_pickup_date': '2030-01-01T10:00:00Z',
        })
        assert response.status_code == 201
        body = response.get_json()
        assert body['email_sent'] is True
        assert body['order']['services']['blankets_light'] is True
        assert body['order']['expected_pickup_date'] == '2030-01-01T10:00:00'

    def test_create_validation_error(self, staff_client, customer):
        response = staff_client.post('/orders/api', json={'customer_id': customer.id, 'services': {}})
        assert response.status_code == 400
        assert 'order type' in response.get_json()['message']

    def test_create_unknown_customer(self, staff_client):
        response = staff_client.post('/orders/api', json={'customer_id': 42, 'services': {'clothes': True}})
        assert response.status_code == 404

    def test_email_failure_does_not_fail_create(self, staff_client, customer, smtp_down):
        response = staff_client.post('/orders/api', json={'customer_id': customer.id,
                                                          'services': {'clothes': True}})
        assert response.status_code == 201
        assert response.get_json()['email_sent'] is False

    def test_status_transition_errors(self, staff_client, staff, customer):
        order = make_order(staff, customer)
        response = staff_client.post(f'/orders/api/{order.id}/status', json={'status': 'completed'})
        assert response.status_code == 400

    def test_ready_via_api(self, staff_client, staff, customer):
        order = make_order(staff, customer)
        update_order_status(staff, order.id, 'in-progress')
        response = staff_client.post(f'/orders/api/{order.id}/status',
                                     json={'status': 'ready', 'weights': {'clothes': '1.5'}})
        assert response.status_code == 200
        assert response.get_json()['order']['pricing']['total_price'] == 45.0

    @pytest.mark.parametrize('weight', ['inf', '-inf', 'nan', 'Infinity'])
    def test_ready_rejects_non_finite_weight(self, staff_client, staff, customer, weight):
        order = make_order(staff, customer)
        update_order_status(staff, order.id, 'in-progress')
        response = staff_client.post(f'/orders/api/{order.id}/status',
                                     json={'status': 'ready', 'weights': {'clothes': weight}})
        assert response.status_code == 400
        assert response.get_json()['success'] is False
        assert order.status == 'in-progress'
        assert order.total_price is None

    def test_weights_must_be_object(self, staff_client, staff, customer):
        order = make_order(staff, customer)
        update_order_status(staff, order.id, 'in-progress')
        response = staff_client.post(f'/orders/api/{order.id}/status',
                                     json={'status': 'ready', 'weights': [2]})
        assert response.status_code == 400

    @pytest.mark.parametrize('path', ['/orders/api', '/orders/api/1/status', '/orders/api/1/payment'])
    def test_non_object_body(self, staff_client, staff, customer, path):
        make_order(staff, customer)
        response = staff_client.post(path, json=['x'])
        assert response.status_code == 400
        assert response.get_json() == {'success': False, 'message': 'Request body must be a JSON object'}

    def test_services_must_be_object(self, staff_client, customer):
        response = staff_client.post('/orders/api', json={'customer_id': customer.id, 'services': 'clothes'})
        assert response.status_code == 400
        assert LaundryOrder.query.count() == 0

    def test_staff_cannot_delete(self, staff_client, staff, customer):
        order = make_order(staff, customer)
        assert staff_client.delete(f'/orders/api/{order.id}').status_code == 403
        assert not order.is_deleted

    def test_admin_delete(self, admin_client, staff, customer):
        order = make_order(staff, customer)
        assert admin_client.delete(f'/orders/api/{order.id}').status_code == 200
        assert order.is_deleted

    def test_calculate_price(self, staff_client):
        response = staff_client.get('/orders/api/calculate-price?clothes=2&blankets_thick=1')
        assert response.get_json()['total_price'] == 120.0

    @pytest.mark.parametrize('query', ['clothes=nan', 'clothes=inf', 'blankets_thick=-inf'])
    def test_calculate_price_rejects_non_finite(self, staff_client, query):
        response = staff_client.get(f'/orders/api/calculate-price?{query}')
        assert response.status_code == 400
        assert 'Invalid weight' in response.get_json()['message']

    def test_generate_id(self, staff_client):
        order_id = staff_client.post('/orders/api/generate-id').get_json()['order_id']
        assert order_id.startswith('LND-') and order_id.endswith('-001')


# ---------------------------------------------------------------------------
# Customers and admin
# ---------------------------------------------------------------------------


class TestCustomerApi:
    def test_create_conflict(self, staff_client, customer):
        response = staff_client.post('/customers/api', json={
            'name': 'Dup', 'email': customer.email, 'phone': '0000'})
        assert response.status_code == 409

    def test_non_object_body(self, staff_client, customer):
        assert staff_client.post('/customers/api', json=['x']).status_code == 400
        response = staff_client.patch(f'/customers/api/{customer.id}', json='Maria')
        assert response.status_code == 400
        assert customer.name == 'Maria Santos'

    def test_lookup(self, staff_client, customer):
        body = staff_client.get(f'/customers/api/lookup?email={customer.email}').get_json()
        assert body['email']['id'] == customer.id
        assert body['phone'] is None

    def test_export(self, staff_client, customer):
        response = staff_client.get('/customers/export')
        assert response.status_code == 200
        assert response.mimetype.endswith('spreadsheetml.sheet')


class TestAdminPages:
    def test_add_user_sends_welcome(self, admin_client, outbox):
        response = admin_client.post('/admin/users/add', data={
            'name': 'New Staff', 'email': 'new@example.com', 'password': 'secret1', 'role': 'staff'})
        assert response.status_code == 302
        assert outbox[0]['To'] == 'new@example.com'

    def test_pricing_form(self, admin_client):
        admin_client.post('/admin/pricing', data={
            'clothes_price_per_kg': '35', 'blankets_light_price_per_kg': '55',
            'blankets_thick_price_per_kg': '65'})
        assert admin_client.get('/admin/api/pricing').get_json()['clothes_price_per_kg'] == 35.0

    def test_audit_api(self, admin_client, staff, customer):
        logs = admin_client.get('/admin/api/audit-logs').get_json()
        assert logs[0]['action'] == 'customer_created'

    def test_audit_api_rejects_non_object_body(self, admin_client):
        response = admin_client.post('/admin/api/audit-logs', json=[{'action': 'x'}])
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    @pytest.mark.parametrize('path', ['/admin/audit-log/export', '/admin/analytics/export?range=all'])
    def test_exports(self, admin_client, staff, customer, path):
        make_order(staff, customer)
        response = admin_client.get(path)
        assert response.status_code == 200
        assert response.mimetype.endswith('spreadsheetml.sheet')

    def test_dashboard_stats_api(self, admin_client):
        body = admin_client.get('/admin/api/dashboard-stats?range=month').get_json()
        assert body['time_range'] == 'month'
        assert len(body['revenue_by_day']) == 30


# ---------------------------------------------------------------------------
# Public tracking
# ---------------------------------------------------------------------------


class TestTracking:
    def test_page_without_login(self, client, staff, customer):
        order = make_order(staff, customer)
        response = client.get(f'/track?id={order.order_id.lower()}')
        assert response.status_code == 200
        assert order.order_id.encode() in response.data
        assert customer.email.encode() not in response.data
        assert customer.phone.encode() not in response.data

    def test_page_unknown_order(self, client):
        response = client.get('/track/?id=LND-00000000-999')
        assert b'Order not found' in response.data

    def test_api_hides_contact_details(self, client, staff, customer):
        order = make_order(staff, customer)
        body = client.get(f'/track/api/{order.order_id}').get_json()
        assert body['status'] == 'pending'
        assert body['customer_name'] == 'Maria Santos'
        assert 'customer' not in body
        assert 'customer_id' not in body
        assert body['timeline'][0]['completed'] is True

    def test_api_deleted_order_is_hidden(self, client, admin, staff, customer):
        from models.order import delete_order
        order = make_order(staff, customer)
        delete_order(admin, order.id)
        assert client.get(f'/track/api/{order.order_id}').status_code == 404
