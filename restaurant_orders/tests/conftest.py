"""
Pytest fixtures for Restaurant Orders module tests.
"""

import pytest
from decimal import Decimal
from django.core.cache import cache

from restaurant_orders.models import (
    Tenant,
    Table,
    PrepSector,
    Category,
    Dish,
    OrdersSettings,
    Order,
)
from restaurant_orders.services import OrderService


@pytest.fixture(autouse=True)
def clear_cache():
    """Rate-limit counters must not leak between tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def tenant(db):
    """Create the restaurant under test."""
    return Tenant.objects.create(name='La Tasca', slug='la-tasca')


@pytest.fixture
def other_tenant(db):
    """Create a second restaurant for isolation checks."""
    return Tenant.objects.create(name='El Puerto', slug='el-puerto')


@pytest.fixture
def orders_settings(tenant):
    """Per-tenant settings with the defaults (10% VAT, tips on)."""
    return OrdersSettings.get_settings(tenant)


@pytest.fixture
def table(tenant):
    """Create table 1."""
    return Table.objects.create(tenant=tenant, number=1, name='Terrace', code='ABC123')


@pytest.fixture
def table_two(tenant):
    """Create table 2."""
    return Table.objects.create(tenant=tenant, number=2, code='DEF456')


@pytest.fixture
def kitchen(tenant):
    return PrepSector.objects.create(tenant=tenant, name='Kitchen', code='KITCHEN')


@pytest.fixture
def bar(tenant):
    return PrepSector.objects.create(tenant=tenant, name='Bar', code='BAR')


@pytest.fixture
def mains(tenant, kitchen):
    return Category.objects.create(tenant=tenant, name='Mains', prep_sector=kitchen)


@pytest.fixture
def drinks(tenant, bar):
    return Category.objects.create(tenant=tenant, name='Drinks', prep_sector=bar)


@pytest.fixture
def burger(tenant, mains):
    return Dish.objects.create(
        tenant=tenant, category=mains, name='Burger',
        price=Decimal('12.50'), allergens=['gluten', 'dairy'],
    )


@pytest.fixture
def fries(tenant, mains):
    return Dish.objects.create(tenant=tenant, category=mains, name='Fries', price=Decimal('4.00'))


@pytest.fixture
def beer(tenant, drinks):
    return Dish.objects.create(tenant=tenant, category=drinks, name='Beer', price=Decimal('3.50'))


@pytest.fixture
def unrouted_dish(tenant):
    """Dish whose category is not bound to any prep sector."""
    category = Category.objects.create(tenant=tenant, name='Specials')
    return Dish.objects.create(tenant=tenant, category=category, name='Daily Special', price=Decimal('9.00'))


@pytest.fixture
def place_order(tenant, table):
    """Factory that submits an order for ``table`` through the service."""
    def _place(items, table_code=None, **kwargs):
        payload = []
        for dish, quantity, *notes in items:
            entry = {'dish_id': str(dish.pk), 'quantity': quantity}
            if notes:
                entry['notes'] = notes[0]
            payload.append(entry)
        return OrderService.create_order(
            tenant_slug=tenant.slug,
            table_code=table_code or table.code,
            items=payload,
            **kwargs
        )
    return _place


@pytest.fixture
def order(place_order, burger, fries, beer):
    """A pending order with two kitchen items and one bar item."""
    result = place_order([(burger, 2), (fries, 1), (beer, 2, 'No ice')])
    return Order.objects.get(pk=result['order_id'])


@pytest.fixture
def staff_client(client, tenant):
    """Client whose session is bound to ``tenant``."""
    session = client.session
    session['tenant_id'] = str(tenant.pk)
    session['staff_name'] = 'Marta'
    session.save()
    return client
