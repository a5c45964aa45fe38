"""
Integration and E2E tests for Restaurant Orders views.
"""

import pytest
import json
import uuid
from django.urls import resolve

from restaurant_orders import views
from restaurant_orders.lifecycle import ItemStatus, OrderStatus
from restaurant_orders.models import Order, Payment, Table

BASE = '/modules/orders'


def post_json(client, url, payload):
    return client.post(url, json.dumps(payload), content_type='application/json')


# ==============================================================================
# URL ROUTING TESTS
# ==============================================================================

class TestURLRouting:
    """Tests for URL routing and resolution."""

    def test_public_create_resolves(self):
        assert resolve(f'{BASE}/api/public/orders/').func == views.api_create_order

    def test_public_status_resolves(self):
        resolver = resolve(f'{BASE}/api/public/la-tasca/ABC123/orders/7/')
        assert resolver.func == views.api_order_status
        assert resolver.kwargs == {'tenant_slug': 'la-tasca', 'table_code': 'ABC123', 'order_number': 7}

    def test_validate_table_resolves(self):
        resolver = resolve(f'{BASE}/api/public/la-tasca/ABC123/')
        assert resolver.func == views.api_validate_table
        assert resolver.kwargs == {'tenant_slug': 'la-tasca', 'table_code': 'ABC123'}

    def test_sector_urls_resolve(self):
        assert resolve(f'{BASE}/api/sectors/KITCHEN/items/').func == views.api_sector_items
        assert resolve(f'{BASE}/api/sectors/KITCHEN/stats/').func == views.api_sector_stats
        assert resolve(f'{BASE}/api/sectors/KITCHEN/orders/{uuid.uuid4()}/advance/').func == views.api_advance_ticket

    def test_item_urls_resolve(self):
        assert resolve(f'{BASE}/api/items/bulk-status/').func == views.api_bulk_item_status
        assert resolve(f'{BASE}/api/items/{uuid.uuid4()}/status/').func == views.api_item_status

    def test_order_urls_resolve(self):
        order_id = uuid.uuid4()
        assert resolve(f'{BASE}/api/orders/').func == views.api_list_orders
        assert resolve(f'{BASE}/api/orders/{order_id}/').func == views.api_order_detail
        assert resolve(f'{BASE}/api/orders/{order_id}/transition/').func == views.api_transition_order
        assert resolve(f'{BASE}/api/orders/{order_id}/tip/').func == views.api_adjust_tip
        assert resolve(f'{BASE}/api/orders/{order_id}/pay/').func == views.api_pay_order

    def test_table_urls_resolve(self):
        table_id = uuid.uuid4()
        assert resolve(f'{BASE}/api/tables/{table_id}/bill/').func == views.api_table_bill
        assert resolve(f'{BASE}/api/tables/{table_id}/close/').func == views.api_close_table


# ==============================================================================
# SESSION & REQUEST HANDLING TESTS
# ==============================================================================

@pytest.mark.django_db
class TestRequestHandling:
    """Tests for tenant binding and payload parsing."""

    def test_staff_api_without_tenant(self, client, kitchen):
        """Test staff endpoints need a restaurant bound to the session."""
        response = client.get(f'{BASE}/api/sectors/KITCHEN/items/')
        assert response.status_code == 404
        assert response.json()['error'] == 'not_found'

    def test_inactive_tenant(self, staff_client, tenant, kitchen):
        tenant.is_active = False
        tenant.save()
        response = staff_client.get(f'{BASE}/api/sectors/KITCHEN/items/')
        assert response.status_code == 404

    def test_invalid_json(self, client):
        response = client.post(f'{BASE}/api/public/orders/', 'not json', content_type='application/json')
        assert response.status_code == 400
        assert response.json()['error'] == 'validation_error'

    def test_json_must_be_an_object(self, client):
        response = post_json(client, f'{BASE}/api/public/orders/', [1, 2])
        assert response.status_code == 400

    def test_wrong_method(self, client):
        response = client.get(f'{BASE}/api/public/orders/')
        assert response.status_code == 405


# ==============================================================================
# PUBLIC ORDER API TESTS
# ==============================================================================

@pytest.mark.django_db
class TestPublicOrderAPI:
    """E2E tests for customer order intake and status."""

    def payload(self, tenant, table, *items, **extra):
        return {
            'tenant_slug': tenant.slug,
            'table_code': table.code,
            'items': [{'dish_id': str(dish.pk), 'quantity': qty} for dish, qty in items],
            **extra,
        }

    def test_create_order(self, client, tenant, table, burger, beer):
        """Test creating an order with items."""
        response = post_json(client, f'{BASE}/api/public/orders/', self.payload(
            tenant, table, (burger, 2), (beer, 1), customer_notes='Birthday',
        ))

        assert response.status_code == 201
        data = response.json()
        assert data['success'] is True
        assert data['order_number'] == 1
        assert data['status'] == OrderStatus.PENDING
        assert data['total'] == '31.35'

        order = Order.objects.get(pk=data['order_id'])
        assert order.customer_notes == 'Birthday'
        assert order.items.count() == 2

    def test_table_code_is_case_insensitive(self, client, tenant, table, burger):
        payload = self.payload(tenant, table, (burger, 1))
        payload['table_code'] = table.code.lower()
        response = post_json(client, f'{BASE}/api/public/orders/', payload)
        assert response.status_code == 201

    def test_without_items(self, client, tenant, table):
        response = post_json(client, f'{BASE}/api/public/orders/', self.payload(tenant, table))
        assert response.status_code == 400
        assert 'items' in response.json()['errors']
        assert not Order.objects.exists()

    def test_bad_quantity(self, client, tenant, table, burger):
        response = post_json(client, f'{BASE}/api/public/orders/', self.payload(tenant, table, (burger, 0)))
        assert response.status_code == 400
        assert 'items.0.quantity' in response.json()['errors']

    def test_quantity_over_maximum(self, client, tenant, table, burger):
        response = post_json(client, f'{BASE}/api/public/orders/', self.payload(tenant, table, (burger, 10 ** 12)))
        assert response.status_code == 400
        assert 'items.0.quantity' in response.json()['errors']
        assert not Order.objects.exists()

    def test_customer_notes_with_script(self, client, tenant, table, burger):
        response = post_json(client, f'{BASE}/api/public/orders/', self.payload(
            tenant, table, (burger, 1), customer_notes='<script>alert(1)</script>',
        ))
        assert response.status_code == 400
        assert 'customer_notes' in response.json()['errors']

    def test_unknown_table(self, client, tenant, burger):
        response = post_json(client, f'{BASE}/api/public/orders/', {
            'tenant_slug': tenant.slug,
            'table_code': 'ZZZ999',
            'items': [{'dish_id': str(burger.pk), 'quantity': 1}],
        })
        assert response.status_code == 404

    def test_unavailable_dish(self, client, tenant, table, burger):
        burger.is_in_stock = False
        burger.save()
        response = post_json(client, f'{BASE}/api/public/orders/', self.payload(tenant, table, (burger, 1)))
        assert response.status_code == 404
        assert response.json()['dish_ids'] == [str(burger.pk)]

    def test_unresolved_sector(self, client, tenant, table, unrouted_dish):
        response = post_json(client, f'{BASE}/api/public/orders/', self.payload(tenant, table, (unrouted_dish, 1)))
        assert response.status_code == 422
        assert response.json()['error'] == 'unresolved_sector'

    def test_rate_limited(self, client, tenant, table, burger, settings):
        settings.RESTAURANT_ORDERS = {'order_rate_limit': {'limit': 1, 'window_seconds': 60}}
        url = f'{BASE}/api/public/orders/'
        assert post_json(client, url, self.payload(tenant, table, (burger, 1))).status_code == 201

        response = post_json(client, url, self.payload(tenant, table, (burger, 1)))
        assert response.status_code == 429

    def test_order_status(self, client, tenant, table, order):
        response = client.get(f'{BASE}/api/public/{tenant.slug}/{table.code}/orders/{order.order_number}/')

        assert response.status_code == 200
        data = response.json()['order']
        assert data['status'] == OrderStatus.PENDING
        assert len(data['items']) == 3
        assert data['status_history'][0]['to_status'] == OrderStatus.PENDING

    def test_order_status_wrong_table(self, client, tenant, table_two, order):
        response = client.get(f'{BASE}/api/public/{tenant.slug}/{table_two.code}/orders/{order.order_number}/')
        assert response.status_code == 404

    def test_validate_table(self, client, tenant, table):
        response = client.get(f'{BASE}/api/public/{tenant.slug}/{table.code.lower()}/')

        assert response.status_code == 200
        data = response.json()
        assert data['valid'] is True
        assert data['table']['id'] == str(table.pk)
        assert data['settings']['currency'] == 'EUR'

    def test_validate_unknown_table(self, client, tenant):
        response = client.get(f'{BASE}/api/public/{tenant.slug}/ZZZ999/')
        assert response.status_code == 404


# ==============================================================================
# PREP SECTOR API TESTS
# ==============================================================================

@pytest.mark.django_db
class TestSectorAPI:
    """E2E tests for the sector consoles."""

    def test_sector_items(self, staff_client, order):
        response = staff_client.get(f'{BASE}/api/sectors/kitchen/items/')

        assert response.status_code == 200
        data = response.json()
        assert data['sector']['code'] == 'KITCHEN'
        assert len(data['pending']) == 1
        assert sorted(i['dish_name'] for i in data['pending'][0]['items']) == ['Burger', 'Fries']
        assert data['in_progress'] == []

    def test_status_filter(self, staff_client, order):
        response = staff_client.get(f'{BASE}/api/sectors/KITCHEN/items/?status=IN_PROGRESS,READY')
        data = response.json()
        assert data['pending'] == []

        response = staff_client.get(f'{BASE}/api/sectors/KITCHEN/items/?status=PENDING&status=READY')
        assert len(response.json()['pending']) == 1

    def test_invalid_status_filter(self, staff_client, order):
        response = staff_client.get(f'{BASE}/api/sectors/KITCHEN/items/?status=SERVED')
        assert response.status_code == 400

    def test_unknown_sector(self, staff_client, order):
        response = staff_client.get(f'{BASE}/api/sectors/PASTRY/items/')
        assert response.status_code == 404

    def test_stats(self, staff_client, order):
        response = staff_client.get(f'{BASE}/api/sectors/BAR/stats/')
        assert response.status_code == 200
        stats = response.json()['stats']
        assert stats['active_orders'] == 1
        assert stats['pending'] == 1

    def test_bulk_status(self, staff_client, order):
        ids = [str(pk) for pk in order.items.filter(prep_sector__code='KITCHEN').values_list('pk', flat=True)]
        url = f'{BASE}/api/items/bulk-status/'

        response = post_json(staff_client, url, {'item_ids': ids, 'status': 'IN_PROGRESS'})
        assert response.status_code == 200
        assert response.json()['updated'] == 2

        # Same request again: the items are no longer PENDING
        response = post_json(staff_client, url, {'item_ids': ids, 'status': 'IN_PROGRESS'})
        assert response.status_code == 409
        assert response.json()['error'] == 'invalid_transition'

    def test_bulk_status_bad_ids(self, staff_client, order):
        response = post_json(staff_client, f'{BASE}/api/items/bulk-status/', {
            'item_ids': ['not-a-uuid'], 'status': 'IN_PROGRESS',
        })
        assert response.status_code == 400

    def test_bulk_status_unknown_item(self, staff_client, order):
        response = post_json(staff_client, f'{BASE}/api/items/bulk-status/', {
            'item_ids': [str(uuid.uuid4())], 'status': 'IN_PROGRESS',
        })
        assert response.status_code == 404

    def test_single_item_status(self, staff_client, order):
        item = order.items.get(dish_name='Beer')
        response = post_json(staff_client, f'{BASE}/api/items/{item.pk}/status/', {'status': 'CANCELLED'})

        assert response.status_code == 200
        item.refresh_from_db()
        assert item.status == ItemStatus.CANCELLED

    def test_advance_ticket(self, staff_client, order):
        url = f'{BASE}/api/sectors/KITCHEN/orders/{order.pk}/advance/'
        response = post_json(staff_client, url, {'status': 'IN_PROGRESS'})

        assert response.status_code == 200
        assert response.json()['updated'] == 2
        assert order.items.get(dish_name='Beer').status == ItemStatus.PENDING

    def test_advance_ticket_rejects_pending(self, staff_client, order):
        url = f'{BASE}/api/sectors/KITCHEN/orders/{order.pk}/advance/'
        response = post_json(staff_client, url, {'status': 'PENDING'})
        assert response.status_code == 400


# ==============================================================================
# ORDER WORKFLOW API TESTS
# ==============================================================================

@pytest.mark.django_db
class TestOrderWorkflowAPI:
    """E2E tests for order transitions, tips and payments."""

    def test_list_orders(self, staff_client, table, order):
        response = staff_client.get(f'{BASE}/api/orders/?status=PENDING&table={table.pk}&limit=10')

        assert response.status_code == 200
        orders = response.json()['orders']
        assert [o['order_id'] for o in orders] == [str(order.pk)]
        assert orders[0]['item_count'] == 3

    def test_list_orders_bad_query(self, staff_client, order):
        for query in ('limit=0', 'limit=500', 'offset=-1', 'status=LOST', 'table=nope'):
            response = staff_client.get(f'{BASE}/api/orders/?{query}')
            assert response.status_code == 400

    def test_list_orders_without_tenant(self, client, order):
        response = client.get(f'{BASE}/api/orders/')
        assert response.status_code == 404

    def test_order_detail(self, staff_client, order):
        response = staff_client.get(f'{BASE}/api/orders/{order.pk}/')

        assert response.status_code == 200
        data = response.json()['order']
        assert data['order_number'] == order.order_number
        assert len(data['items']) == 3
        assert data['payment'] is None

    def test_order_detail_unknown(self, staff_client):
        response = staff_client.get(f'{BASE}/api/orders/{uuid.uuid4()}/')
        assert response.status_code == 404

    def test_transition(self, staff_client, order):
        response = post_json(staff_client, f'{BASE}/api/orders/{order.pk}/transition/', {'status': 'CONFIRMED'})

        assert response.status_code == 200
        assert response.json()['status'] == OrderStatus.CONFIRMED
        entry = order.status_history.last()
        assert entry.changed_by == 'Marta'

    def test_illegal_transition(self, staff_client, order):
        response = post_json(staff_client, f'{BASE}/api/orders/{order.pk}/transition/', {'status': 'READY'})

        assert response.status_code == 409
        data = response.json()
        assert data['current'] == OrderStatus.PENDING
        assert data['target'] == OrderStatus.READY

    def test_cancel_sets_closed_at(self, staff_client, order):
        response = post_json(staff_client, f'{BASE}/api/orders/{order.pk}/transition/', {
            'status': 'CANCELLED', 'notes': 'Customer left',
        })
        assert response.status_code == 200
        assert response.json()['closed_at'] is not None

    def test_other_tenant_order(self, staff_client, other_tenant, order):
        session = staff_client.session
        session['tenant_id'] = str(other_tenant.pk)
        session.save()
        response = post_json(staff_client, f'{BASE}/api/orders/{order.pk}/transition/', {'status': 'CONFIRMED'})
        assert response.status_code == 404

    def test_adjust_tip(self, staff_client, order):
        response = post_json(staff_client, f'{BASE}/api/orders/{order.pk}/tip/', {'tip_percentage': '10'})

        assert response.status_code == 200
        data = response.json()
        assert data['tip_amount'] == '3.60'
        assert data['total'] == '43.20'

    def test_adjust_tip_needs_one_value(self, staff_client, order):
        response = post_json(staff_client, f'{BASE}/api/orders/{order.pk}/tip/', {})
        assert response.status_code == 400

    def test_pay_order(self, staff_client, order):
        response = post_json(staff_client, f'{BASE}/api/orders/{order.pk}/pay/', {'payment_method': 'cash'})

        assert response.status_code == 201
        data = response.json()
        assert data['method'] == Payment.Method.CASH
        assert data['status'] == Payment.Status.COMPLETED
        assert data['amount'] == '39.60'

    def test_pay_order_twice(self, staff_client, order):
        url = f'{BASE}/api/orders/{order.pk}/pay/'
        post_json(staff_client, url, {'payment_method': 'BIZUM'})
        response = post_json(staff_client, url, {'payment_method': 'CARD'})
        assert response.status_code == 409
        assert response.json()['error'] == 'payment_exists'


# ==============================================================================
# CHECKOUT API TESTS
# ==============================================================================

@pytest.mark.django_db
class TestCheckoutAPI:
    """E2E tests for table bill and closure."""

    def test_bill(self, staff_client, table, order):
        response = staff_client.get(f'{BASE}/api/tables/{table.pk}/bill/')

        assert response.status_code == 200
        data = response.json()
        assert data['order_count'] == 1
        assert data['combined_total'] == '39.60'

    def test_close_table(self, staff_client, table, order):
        url = f'{BASE}/api/tables/{table.pk}/close/'
        response = post_json(staff_client, url, {'payment_method': 'CARD'})

        assert response.status_code == 200
        data = response.json()
        assert data['combined_total'] == '39.60'
        assert data['payments'][0]['status'] == Payment.Status.COMPLETED
        assert data['table']['status'] == Table.Status.CLEANING

        response = post_json(staff_client, url, {'payment_method': 'CARD'})
        assert response.status_code == 409
        assert response.json()['error'] == 'no_open_orders'

    def test_close_table_bad_method(self, staff_client, table, order):
        response = post_json(staff_client, f'{BASE}/api/tables/{table.pk}/close/', {'payment_method': 'CHEQUE'})
        assert response.status_code == 400
        assert not Payment.objects.exists()

    def test_close_unknown_table(self, staff_client):
        response = post_json(staff_client, f'{BASE}/api/tables/{uuid.uuid4()}/close/', {'payment_method': 'CASH'})
        assert response.status_code == 404
