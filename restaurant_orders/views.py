"""
Restaurant Orders Views

JSON API over the services: public order intake and status, prep sector
consoles, order workflow and table checkout.
"""

import functools
import json

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST, require_GET
from django.utils.translation import gettext_lazy as _

from .exceptions import OrdersError, TenantNotFound, ValidationError
from .forms import (
    BulkItemStatusForm,
    OrderCreateForm,
    OrderListForm,
    OrderTransitionForm,
    PaymentForm,
    TicketAdvanceForm,
    TipForm,
    clean_or_raise,
)
from .models import Tenant
from .services import CheckoutService, ItemService, OrderService, SectorDispatcher


def _tenant(request):
    tenant_id = request.session.get('tenant_id')
    tenant = Tenant.objects.filter(pk=tenant_id, is_active=True).first() if tenant_id else None
    if tenant is None:
        raise TenantNotFound()
    return tenant


def _actor(request):
    return request.session.get('staff_name', '')


def _json_body(request):
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError(str(_('Invalid JSON')))
    if not isinstance(data, dict):
        raise ValidationError(str(_('Invalid JSON')))
    return data


def api_view(view):
    """Translate OrdersError raised by the services into JSON error responses."""
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except OrdersError as exc:
            return JsonResponse(exc.as_dict(), status=exc.status_code)
    return wrapper


# =============================================================================
# Public (customer) API
# =============================================================================

@csrf_exempt
@require_POST
@api_view
def api_create_order(request):
    """Create order with items via JSON API."""
    data = clean_or_raise(OrderCreateForm(_json_body(request)))

    result = OrderService.create_order(
        tenant_slug=data['tenant_slug'],
        table_code=data['table_code'],
        items=data['items'],
        customer_notes=data.get('customer_notes'),
        tip_percentage=data.get('tip_percentage'),
    )
    return JsonResponse({'success': True, **result}, status=201)


@require_GET
@api_view
def api_order_status(request, tenant_slug, table_code, order_number):
    result = OrderService.get_order_status(tenant_slug, table_code.upper(), order_number)
    return JsonResponse({'success': True, 'order': result})


@require_GET
@api_view
def api_validate_table(request, tenant_slug, table_code):
    """Validate the scanned table before the customer menu opens."""
    result = OrderService.validate_table(tenant_slug, table_code)
    return JsonResponse({'success': True, **result})


# =============================================================================
# Prep Sectors
# =============================================================================

@require_GET
@api_view
def api_sector_items(request, sector_code):
    statuses = request.GET.getlist('status')
    if len(statuses) == 1 and ',' in statuses[0]:
        statuses = statuses[0].split(',')

    result = SectorDispatcher.get_items_by_sector(_tenant(request), sector_code, statuses or None)
    return JsonResponse({'success': True, **result})


@require_GET
@api_view
def api_sector_stats(request, sector_code):
    stats = SectorDispatcher.get_sector_stats(_tenant(request), sector_code)
    return JsonResponse({'success': True, 'stats': stats})


@require_POST
@api_view
def api_bulk_item_status(request):
    data = clean_or_raise(BulkItemStatusForm(_json_body(request)))
    updated = SectorDispatcher.bulk_update_item_status(_tenant(request), data['item_ids'], data['status'])
    return JsonResponse({'success': True, 'updated': updated, 'status': data['status']})


@require_POST
@api_view
def api_item_status(request, item_id):
    data = clean_or_raise(BulkItemStatusForm({**_json_body(request), 'item_ids': [str(item_id)]}))
    item = ItemService.transition_item(_tenant(request), item_id, data['status'])
    return JsonResponse({'success': True, 'item_id': str(item.pk), 'status': item.status})


@require_POST
@api_view
def api_advance_ticket(request, sector_code, order_id):
    data = clean_or_raise(TicketAdvanceForm(_json_body(request)))
    updated = SectorDispatcher.advance_ticket(_tenant(request), order_id, sector_code, data['status'])
    return JsonResponse({'success': True, 'updated': updated, 'status': data['status']})


# =============================================================================
# Order Workflow
# =============================================================================

@require_GET
@api_view
def api_list_orders(request):
    data = clean_or_raise(OrderListForm(request.GET))
    orders = OrderService.list_orders(
        _tenant(request),
        status=data.get('status') or None,
        table_id=data.get('table'),
        limit=data['limit'],
        offset=data['offset'],
    )
    return JsonResponse({'success': True, 'orders': orders})


@require_GET
@api_view
def api_order_detail(request, order_id):
    order = OrderService.get_order(_tenant(request), order_id)
    return JsonResponse({'success': True, 'order': order})


@require_POST
@api_view
def api_transition_order(request, order_id):
    data = clean_or_raise(OrderTransitionForm(_json_body(request)))
    order = OrderService.transition_order(
        _tenant(request), order_id, data['status'],
        actor=_actor(request), notes=data.get('notes', ''),
    )
    return JsonResponse({
        'success': True,
        'order_id': str(order.pk),
        'status': order.status,
        'closed_at': order.closed_at.isoformat() if order.closed_at else None,
    })


@require_POST
@api_view
def api_adjust_tip(request, order_id):
    data = clean_or_raise(TipForm(_json_body(request)))
    order = OrderService.adjust_tip(
        _tenant(request), order_id,
        tip_percentage=data.get('tip_percentage'),
        tip_amount=data.get('tip_amount'),
    )
    return JsonResponse({
        'success': True,
        'order_id': str(order.pk),
        'tip_amount': str(order.tip_amount),
        'total': str(order.total),
    })


@require_POST
@api_view
def api_pay_order(request, order_id):
    data = clean_or_raise(PaymentForm(_json_body(request)))
    payment = CheckoutService.pay_order(
        _tenant(request), order_id, data['payment_method'], actor=_actor(request),
    )
    return JsonResponse({
        'success': True,
        'payment_id': str(payment.pk),
        'method': payment.method,
        'status': payment.status,
        'amount': str(payment.amount),
    }, status=201)


# =============================================================================
# Tables & Checkout
# =============================================================================

@require_GET
@api_view
def api_table_bill(request, table_id):
    bill = CheckoutService.get_table_bill(_tenant(request), table_id)
    return JsonResponse({'success': True, **bill})


@require_POST
@api_view
def api_close_table(request, table_id):
    data = clean_or_raise(PaymentForm(_json_body(request)))
    result = CheckoutService.close_table(
        _tenant(request), table_id, data['payment_method'], actor=_actor(request),
    )
    return JsonResponse({'success': True, **result})
