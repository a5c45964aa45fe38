"""
Checkout Service

Aggregates a table's open orders into one bill and settles it, one payment
per order.
"""

import logging
from typing import Dict, List, Any

from django.db import transaction
from django.utils import timezone

from .. import money
from ..exceptions import (
    InvalidTransition,
    NoOpenOrders,
    PaymentExists,
    TableNotFound,
    ValidationError,
)
from ..lifecycle import ItemStatus, OrderStatus, ORDER_TERMINAL
from ..models import Order, OrdersSettings, Payment, Table
from ..signals import table_closed, send_on_commit
from .order_service import OrderService

logger = logging.getLogger(__name__)

# Methods settled on the spot; anything else waits for confirmation.
IMMEDIATE_METHODS = (Payment.Method.CASH, Payment.Method.CARD)

UNRESOLVED_ITEM_STATUSES = (ItemStatus.PENDING, ItemStatus.IN_PROGRESS)


def _parse_method(payment_method) -> str:
    try:
        return Payment.Method(str(payment_method).upper())
    except ValueError:
        raise ValidationError(
            f"Unknown payment method: {payment_method}",
            errors={'payment_method': [f"Must be one of {', '.join(Payment.Method.values)}"]},
        )


def _get_table(tenant, table_id) -> Table:
    try:
        return Table.objects.get(pk=table_id, tenant=tenant)
    except Table.DoesNotExist:
        raise TableNotFound(table_id)


def _open_orders(table):
    return (
        Order.objects
        .filter(table=table)
        .exclude(status__in=ORDER_TERMINAL)
        .order_by('created_at', 'order_number')
    )


def _serialize_table(table: Table) -> Dict[str, Any]:
    return {
        'id': str(table.pk),
        'number': table.number,
        'name': table.name,
        'status': table.status,
    }


def _serialize_order(order: Order) -> Dict[str, Any]:
    return {
        'id': str(order.pk),
        'order_number': order.order_number,
        'status': order.status,
        'created_at': order.created_at.isoformat(),
        'subtotal': str(order.subtotal),
        'vat_amount': str(order.vat_amount),
        'tip_amount': str(order.tip_amount),
        'total': str(order.total),
        'items': [{
            'id': str(item.pk),
            'dish_name': item.dish_name,
            'quantity': item.quantity,
            'unit_price': str(item.unit_price),
            'total': str(item.line_total),
            'status': item.status,
        } for item in order.items.all()],
    }


def _serialize_payment(payment: Payment) -> Dict[str, Any]:
    return {
        'id': str(payment.pk),
        'order_id': str(payment.order_id),
        'method': payment.method,
        'status': payment.status,
        'amount': str(payment.amount),
        'paid_at': payment.paid_at.isoformat() if payment.paid_at else None,
    }


class CheckoutService:
    """Service for table checkout and payments."""

    @staticmethod
    def get_table_bill(tenant, table_id) -> Dict[str, Any]:
        """
        Preview of everything the table owes. Read-only.

        A table with nothing open gets an empty bill, not an error.
        """
        table = _get_table(tenant, table_id)
        orders = list(_open_orders(table).prefetch_related('items'))
        combined = sum(order.total_minor for order in orders)
        return {
            'table': _serialize_table(table),
            'orders': [_serialize_order(order) for order in orders],
            'combined_total': money.as_str(combined),
            'order_count': len(orders),
        }

    @staticmethod
    @transaction.atomic
    def close_table(tenant, table_id, payment_method, actor: str = '') -> Dict[str, Any]:
        """
        Settle every open order of the table with ``payment_method``.

        Each order gets its own COMPLETED payment for its own total and moves
        to PAID. Item statuses are not touched. All or nothing.
        """
        method = _parse_method(payment_method)
        try:
            table = Table.objects.select_for_update().get(pk=table_id, tenant=tenant)
        except Table.DoesNotExist:
            raise TableNotFound(table_id)

        orders = list(_open_orders(table).select_for_update())
        if not orders:
            raise NoOpenOrders(table.pk)

        settings = OrdersSettings.get_settings(tenant)
        if settings.require_items_resolved_on_close:
            unresolved = [
                order.order_number for order in orders
                if order.items.filter(status__in=UNRESOLVED_ITEM_STATUSES).exists()
            ]
            if unresolved:
                raise ValidationError(
                    "Some items are still being prepared",
                    errors={'orders': [f"Order #{n} has unfinished items." for n in unresolved]},
                )

        now = timezone.now()
        payments: List[Payment] = []
        for order in orders:
            payment = Payment.objects.select_for_update().filter(order=order).first()
            if payment is None:
                payment = Payment(tenant=tenant, order=order)
            elif payment.status == Payment.Status.COMPLETED:
                raise PaymentExists(order.pk)

            payment.method = method
            payment.status = Payment.Status.COMPLETED
            payment.amount = order.total
            payment.paid_at = now
            payment.save()
            payments.append(payment)

            OrderService._apply_transition(
                order, OrderStatus.PAID, actor=actor,
                notes=f"Table closed - payment via {method}",
                settlement=True,
            )

        table.status = Table.Status.CLEANING
        table.save(update_fields=['status', 'updated_at'])

        combined = sum(order.total_minor for order in orders)
        send_on_commit(
            table_closed, sender=Table,
            table=table, orders=orders, payment_method=method, actor=actor,
        )
        logger.info(
            "Table %s closed: %s orders, %s via %s",
            table.number, len(orders), money.as_str(combined), method,
        )

        return {
            'table': _serialize_table(table),
            'orders': [_serialize_order(order) for order in orders],
            'combined_total': money.as_str(combined),
            'payments': [_serialize_payment(payment) for payment in payments],
        }

    @staticmethod
    @transaction.atomic
    def pay_order(tenant, order_id, payment_method, actor: str = '') -> Payment:
        """
        Record the payment of a single order.

        Cash and card settle immediately and move the order to PAID; Bizum
        stays PENDING until the table is closed or the payment confirmed.
        """
        method = _parse_method(payment_method)
        order = OrderService._lock_order(tenant, order_id)

        if not order.is_open:
            raise InvalidTransition(
                current=order.status, target=OrderStatus.PAID,
                message=f"Order #{order.order_number} is already {order.status}",
            )
        if Payment.objects.filter(order=order).exists():
            raise PaymentExists(order.pk)

        immediate = method in IMMEDIATE_METHODS
        payment = Payment.objects.create(
            tenant=tenant,
            order=order,
            method=method,
            amount=order.total,
            status=Payment.Status.COMPLETED if immediate else Payment.Status.PENDING,
            paid_at=timezone.now() if immediate else None,
        )

        if immediate:
            OrderService._apply_transition(
                order, OrderStatus.PAID, actor=actor,
                notes=f"Payment via {method}",
                settlement=True,
            )
        logger.info("Order #%s payment %s via %s (%s)", order.order_number, payment.amount, method, payment.status)
        return payment
