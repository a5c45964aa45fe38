"""
Order Service

Handles business logic for order operations: intake, the order lifecycle
and customer-facing status reads.
"""

import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Dict, Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import RegexValidator
from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from .. import money
from ..conf import get_setting
from ..exceptions import (
    DishUnavailable,
    InvalidTransition,
    OrderNotFound,
    TableNotFound,
    TenantNotFound,
    ValidationError,
)
from ..lifecycle import (
    OrderStatus,
    ORDER_TERMINAL,
    is_legal_order_transition,
    is_legal_settlement,
)
from ..models import (
    Dish,
    Order,
    OrderItem,
    OrderStatusHistory,
    OrdersSettings,
    Payment,
    Table,
    Tenant,
)
from ..signals import order_created, order_status_changed, send_on_commit
from ..throttling import check_order_rate
from .dispatch_service import SectorDispatcher
from .numbering import OrderNumberService

logger = logging.getLogger(__name__)

ORDER_PLACED_NOTE = 'Order placed by customer'

# Script tags and inline event handlers (onload=, onclick=, ...)
validate_no_markup = RegexValidator(
    r'(?is)<script\b[^>]*>.*?</script>|on\w+\s*=',
    message='Invalid characters in notes',
    inverse_match=True,
)


def _clean_items(items) -> List[Dict[str, Any]]:
    """Normalize submitted item tuples, collecting every problem found."""
    if not items:
        raise ValidationError("At least one item is required", errors={'items': ['This field is required.']})
    if not isinstance(items, (list, tuple)):
        raise ValidationError("Items must be a list", errors={'items': ['Must be a list.']})

    max_items = get_setting('max_items_per_order')
    if len(items) > max_items:
        raise ValidationError(
            f"An order may contain at most {max_items} items",
            errors={'items': [f'At most {max_items} items.']},
        )

    max_notes = get_setting('max_item_notes_length')
    max_quantity = get_setting('max_item_quantity')
    cleaned, errors = [], {}
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            errors[f'items.{index}'] = ['Must be an object.']
            continue

        dish_id = raw.get('dish_id')
        try:
            dish_id = uuid.UUID(str(dish_id))
        except ValueError:
            errors[f'items.{index}.dish_id'] = ['Must be a valid dish id.']

        quantity = raw.get('quantity')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            errors[f'items.{index}.quantity'] = ['Must be a positive integer.']
        elif quantity > max_quantity:
            errors[f'items.{index}.quantity'] = [f'At most {max_quantity}.']

        notes = raw.get('notes') or ''
        if not isinstance(notes, str) or len(notes) > max_notes:
            errors[f'items.{index}.notes'] = [f'At most {max_notes} characters.']

        cleaned.append({'dish_id': str(dish_id), 'quantity': quantity, 'notes': notes})

    if errors:
        raise ValidationError("Invalid order items", errors=errors)
    return cleaned


def _check_amounts(subtotal, vat, tip):
    if not (money.fits(subtotal) and money.fits(subtotal + vat + tip)):
        raise ValidationError(
            "Order total is too large",
            errors={'total': [f"At most {money.as_str(money.MAX_MINOR)}."]},
        )


def _clean_tip_percentage(tip_percentage) -> Optional[Decimal]:
    if tip_percentage is None:
        return None
    try:
        value = Decimal(str(tip_percentage))
    except InvalidOperation:
        raise ValidationError("Invalid tip percentage", errors={'tip_percentage': ['Must be a number.']})
    if not value.is_finite() or value < 0 or value > get_setting('max_tip_percentage'):
        raise ValidationError(
            "Invalid tip percentage",
            errors={'tip_percentage': [f"Must be between 0 and {get_setting('max_tip_percentage')}."]},
        )
    return value


def _serialize_item(item: OrderItem) -> Dict[str, Any]:
    return {
        'id': str(item.pk),
        'dish_id': str(item.dish_id),
        'dish_name': item.dish_name,
        'quantity': item.quantity,
        'unit_price': str(item.unit_price),
        'total': str(item.line_total),
        'notes': item.notes,
        'status': item.status,
        'prep_sector': item.prep_sector.code,
    }


def _serialize_history(entry: OrderStatusHistory) -> Dict[str, Any]:
    return {
        'from_status': entry.from_status,
        'to_status': entry.to_status,
        'changed_at': entry.changed_at.isoformat(),
        'changed_by': entry.changed_by,
        'notes': entry.notes,
    }


def _serialize_item_detail(item: OrderItem) -> Dict[str, Any]:
    return {
        **_serialize_item(item),
        'prep_sector_name': item.prep_sector.name,
        'started_at': item.started_at.isoformat() if item.started_at else None,
        'completed_at': item.completed_at.isoformat() if item.completed_at else None,
        'served_at': item.served_at.isoformat() if item.served_at else None,
        'prep_time_seconds': item.prep_time_seconds,
    }


def _serialize_table(table: Table) -> Dict[str, Any]:
    return {'id': str(table.pk), 'number': table.number, 'name': table.name}


def _serialize_payment(payment: Payment) -> Dict[str, Any]:
    return {
        'id': str(payment.pk),
        'method': payment.method,
        'status': payment.status,
        'amount': str(payment.amount),
        'reference': payment.reference,
        'paid_at': payment.paid_at.isoformat() if payment.paid_at else None,
    }


def _serialize_amounts(order: Order) -> Dict[str, Any]:
    return {
        'subtotal': str(order.subtotal),
        'vat_amount': str(order.vat_amount),
        'tip_amount': str(order.tip_amount),
        'total': str(order.total),
    }


def _clean_page(limit, offset):
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= 100:
        raise ValidationError("Invalid limit", errors={'limit': ['Must be between 1 and 100.']})
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValidationError("Invalid offset", errors={'offset': ['Must not be negative.']})


class OrderService:
    """Service for managing orders."""

    # =========================================================================
    # Intake
    # =========================================================================

    @staticmethod
    def create_order(
        tenant_slug: str,
        table_code: str,
        items: List[Dict],
        customer_notes: str = None,
        tip_percentage=None,
        created_by: str = '',
    ) -> Dict[str, Any]:
        """
        Create a new order with items for the table behind ``table_code``.

        Args:
            tenant_slug: Restaurant slug
            table_code: Six-character table access code
            items: List of dicts with dish_id, quantity and optional notes
            customer_notes: Free text shown on every prep ticket
            tip_percentage: Optional tip, percent of the subtotal
            created_by: Staff reference when a waiter submits on the customer's behalf

        Returns:
            Dict with order_id, order_number, status, total and created_at

        Everything is written in one transaction; any failure leaves no
        trace except the rate-limit counter.
        """
        check_order_rate(tenant_slug, table_code)

        cleaned = _clean_items(items)
        tip_percentage = _clean_tip_percentage(tip_percentage)
        customer_notes = (customer_notes or '').strip()
        if len(customer_notes) > get_setting('max_customer_notes_length'):
            raise ValidationError(
                "Customer notes are too long",
                errors={'customer_notes': [f"At most {get_setting('max_customer_notes_length')} characters."]},
            )
        try:
            validate_no_markup(customer_notes)
        except DjangoValidationError as exc:
            raise ValidationError("Invalid customer notes", errors={'customer_notes': exc.messages})

        with transaction.atomic():
            tenant = Tenant.objects.filter(slug=tenant_slug, is_active=True).first()
            if tenant is None:
                raise TenantNotFound(tenant_slug)

            table = (
                Table.objects
                .select_for_update()
                .filter(tenant=tenant, code=table_code, is_active=True)
                .first()
            )
            if table is None:
                raise TableNotFound(table_code)

            dish_ids = list(dict.fromkeys(item['dish_id'] for item in cleaned))
            dishes = {
                str(dish.pk): dish
                for dish in Dish.objects.filter(
                    tenant=tenant, pk__in=dish_ids,
                    is_available=True, is_in_stock=True,
                ).select_related('category__prep_sector')
            }
            missing = [dish_id for dish_id in dish_ids if dish_id not in dishes]
            if missing:
                raise DishUnavailable(missing)

            sectors = {dish_id: SectorDispatcher.resolve_sector(dish) for dish_id, dish in dishes.items()}

            settings = OrdersSettings.get_settings(tenant)
            if tip_percentage and not settings.tip_enabled:
                raise ValidationError(
                    "Tips are not enabled for this restaurant",
                    errors={'tip_percentage': ['Tips are disabled.']},
                )

            subtotal = sum(
                money.line_total(item['quantity'], dishes[item['dish_id']].price)
                for item in cleaned
            )
            vat = money.percent_of(subtotal, settings.vat_rate)
            tip = money.percent_of(subtotal, tip_percentage) if tip_percentage else 0
            _check_amounts(subtotal, vat, tip)

            order = Order(
                tenant=tenant,
                table=table,
                order_number=OrderNumberService.next_number(tenant),
                status=OrderStatus.PENDING,
                customer_notes=customer_notes,
                created_by=created_by or '',
            )
            order.set_amounts(subtotal, vat, tip)
            order.save()

            OrderItem.objects.bulk_create([
                OrderItem(
                    order=order,
                    dish=dishes[item['dish_id']],
                    prep_sector=sectors[item['dish_id']],
                    dish_name=dishes[item['dish_id']].name,
                    unit_price=dishes[item['dish_id']].price,
                    quantity=item['quantity'],
                    notes=item['notes'],
                )
                for item in cleaned
            ])

            OrderStatusHistory.objects.create(
                order=order,
                from_status=None,
                to_status=OrderStatus.PENDING,
                changed_by=created_by or '',
                notes=ORDER_PLACED_NOTE,
            )

            if table.status == Table.Status.AVAILABLE:
                table.status = Table.Status.OCCUPIED
                table.save(update_fields=['status', 'updated_at'])

            send_on_commit(order_created, sender=Order, order=order)

        logger.info(
            "Order #%s created for %s table %s (%s items, total %s)",
            order.order_number, tenant.slug, table.number, len(cleaned), order.total,
        )
        return {
            'order_id': str(order.pk),
            'order_number': order.order_number,
            'status': order.status,
            'total': str(order.total),
            'created_at': order.created_at.isoformat(),
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @staticmethod
    def _lock_order(tenant, order_id) -> Order:
        try:
            return Order.objects.select_for_update().get(pk=order_id, tenant=tenant)
        except Order.DoesNotExist:
            raise OrderNotFound(order_id)

    @staticmethod
    def _apply_transition(order: Order, target, actor: str = '', notes: str = '', settlement=False) -> Order:
        """
        Move a locked order to ``target`` and append its history row.

        Callers must hold the row lock inside an open transaction. With
        ``settlement`` (checkout only) PAID is reachable from any open status.
        """
        try:
            target = OrderStatus(target)
        except ValueError:
            raise ValidationError(
                f"Unknown order status: {target}",
                errors={'status': [f"Must be one of {', '.join(OrderStatus.values)}"]},
            )

        current = order.status
        if settlement and target == OrderStatus.PAID:
            legal = is_legal_settlement(current)
        else:
            legal = is_legal_order_transition(current, target)
        if not legal:
            logger.warning("Rejected order #%s: %s -> %s", order.order_number, current, target)
            raise InvalidTransition(current=current, target=target)

        order.status = target
        update_fields = ['status', 'updated_at']
        if target in ORDER_TERMINAL:
            order.closed_at = timezone.now()
            order.closed_by = actor or ''
            update_fields += ['closed_at', 'closed_by']
        order.save(update_fields=update_fields)

        OrderStatusHistory.objects.create(
            order=order,
            from_status=current,
            to_status=target,
            changed_by=actor or '',
            notes=notes or '',
        )

        send_on_commit(
            order_status_changed, sender=Order,
            order=order, from_status=current, to_status=target, actor=actor,
        )
        logger.info("Order #%s: %s -> %s (%s)", order.order_number, current, target, actor or '-')
        return order

    @staticmethod
    @transaction.atomic
    def transition_order(tenant, order_id, target_status, actor: str = '', notes: str = '') -> Order:
        """Lock the order and move it to ``target_status``."""
        order = OrderService._lock_order(tenant, order_id)
        return OrderService._apply_transition(order, target_status, actor=actor, notes=notes)

    @staticmethod
    def cancel_order(tenant, order_id, actor: str = '', reason: str = '') -> Order:
        """Cancel an order. Item statuses are left as they are."""
        return OrderService.transition_order(
            tenant, order_id, OrderStatus.CANCELLED, actor=actor, notes=reason,
        )

    @staticmethod
    @transaction.atomic
    def adjust_tip(tenant, order_id, tip_percentage=None, tip_amount=None) -> Order:
        """
        Replace the tip of an unpaid order and recompute its total.

        Exactly one of ``tip_percentage`` (percent of the subtotal) or
        ``tip_amount`` (absolute) must be given.
        """
        if (tip_percentage is None) == (tip_amount is None):
            raise ValidationError(
                "Provide either tip_percentage or tip_amount",
                errors={'tip': ['Exactly one of tip_percentage or tip_amount is required.']},
            )

        order = OrderService._lock_order(tenant, order_id)
        if not order.is_open:
            raise InvalidTransition(
                current=order.status,
                message=f"Order #{order.order_number} is {order.status}; its tip cannot change",
            )
        if Payment.objects.filter(order=order, status=Payment.Status.COMPLETED).exists():
            raise InvalidTransition(
                current=order.status,
                message=f"Order #{order.order_number} is already paid",
            )

        settings = OrdersSettings.get_settings(tenant)
        subtotal = money.to_minor(order.subtotal)
        vat = money.to_minor(order.vat_amount)

        if tip_percentage is not None:
            percentage = _clean_tip_percentage(tip_percentage)
            tip = money.percent_of(subtotal, percentage)
        else:
            try:
                amount = Decimal(str(tip_amount))
            except InvalidOperation:
                raise ValidationError("Invalid tip amount", errors={'tip_amount': ['Must be a number.']})
            if not amount.is_finite() or amount < 0:
                raise ValidationError("Invalid tip amount", errors={'tip_amount': ['Must not be negative.']})
            if amount > money.from_minor(money.MAX_MINOR):
                raise ValidationError("Invalid tip amount", errors={'tip_amount': ['Too large.']})
            tip = money.to_minor(amount)

        _check_amounts(subtotal, vat, tip)

        if tip and not settings.tip_enabled:
            raise ValidationError(
                "Tips are not enabled for this restaurant",
                errors={'tip': ['Tips are disabled.']},
            )

        order.set_amounts(subtotal, vat, tip)
        order.save(update_fields=['subtotal', 'vat_amount', 'tip_amount', 'total', 'updated_at'])
        logger.info("Order #%s tip set to %s (total %s)", order.order_number, order.tip_amount, order.total)
        return order

    # =========================================================================
    # Reads
    # =========================================================================

    @staticmethod
    def suggest_status(order: Order) -> Optional[str]:
        """Order status implied by the items' progress, or None. Never applied."""
        return order.suggested_status

    @staticmethod
    def get_order_status(tenant_slug: str, table_code: str, order_number: int) -> Dict[str, Any]:
        """Customer-facing read of one order placed at the table."""
        order = (
            Order.objects
            .filter(
                tenant__slug=tenant_slug, tenant__is_active=True,
                table__code=table_code, order_number=order_number,
            )
            .prefetch_related('items__prep_sector', 'status_history')
            .first()
        )
        if order is None:
            raise OrderNotFound(order_number)

        return {
            'order_id': str(order.pk),
            'order_number': order.order_number,
            'status': order.status,
            'customer_notes': order.customer_notes,
            **_serialize_amounts(order),
            'created_at': order.created_at.isoformat(),
            'items': [_serialize_item(item) for item in order.items.all()],
            'status_history': [_serialize_history(entry) for entry in order.status_history.all()],
            'suggested_status': OrderService.suggest_status(order),
        }

    @staticmethod
    def validate_table(tenant_slug: str, table_code: str) -> Dict[str, Any]:
        """
        Check that a scanned table code can accept orders.

        Returns the table, the restaurant and the ordering settings the
        customer menu needs (VAT rate, tip options, currency).
        """
        tenant = Tenant.objects.filter(slug=tenant_slug, is_active=True).first()
        if tenant is None:
            raise TenantNotFound(tenant_slug)

        table = Table.objects.filter(tenant=tenant, code=table_code.upper(), is_active=True).first()
        if table is None:
            raise TableNotFound(table_code)

        settings = OrdersSettings.get_settings(tenant)
        return {
            'valid': True,
            'table': {**_serialize_table(table), 'status': table.status},
            'tenant': {'id': str(tenant.pk), 'name': tenant.name, 'slug': tenant.slug},
            'settings': {
                'vat_rate': str(settings.vat_rate),
                'tip_enabled': settings.tip_enabled,
                'tip_percentages': settings.tip_percentages,
                'currency': settings.currency,
            },
        }

    @staticmethod
    def list_orders(tenant, status=None, table_id=None, limit=50, offset=0) -> List[Dict[str, Any]]:
        """Staff listing of the tenant's orders, newest first."""
        _clean_page(limit, offset)

        orders = Order.objects.filter(tenant=tenant)
        if status is not None:
            if status not in OrderStatus.values:
                raise ValidationError("Invalid status", errors={'status': [f'Unknown status {status}.']})
            orders = orders.filter(status=status)
        if table_id is not None:
            try:
                table_id = uuid.UUID(str(table_id))
            except ValueError:
                raise ValidationError("Invalid table id", errors={'table': ['Must be a valid table id.']})
            orders = orders.filter(table_id=table_id)

        orders = (
            orders
            .select_related('table')
            .prefetch_related('items__prep_sector')
            .annotate(item_count=Count('items'))
            .order_by('-created_at', '-order_number')
        )[offset:offset + limit]

        return [
            {
                'order_id': str(order.pk),
                'order_number': order.order_number,
                'status': order.status,
                'table': _serialize_table(order.table),
                'customer_notes': order.customer_notes,
                **_serialize_amounts(order),
                'item_count': order.item_count,
                'items': [_serialize_item(item) for item in order.items.all()],
                'created_at': order.created_at.isoformat(),
                'closed_at': order.closed_at.isoformat() if order.closed_at else None,
            }
            for order in orders
        ]

    @staticmethod
    def get_order(tenant, order_id) -> Dict[str, Any]:
        """Staff read of one order with items, history (newest first) and payment."""
        order = (
            Order.objects
            .filter(pk=order_id, tenant=tenant)
            .select_related('table')
            .prefetch_related('items__prep_sector')
            .first()
        )
        if order is None:
            raise OrderNotFound(order_id)

        payment = Payment.objects.filter(order=order).first()
        history = order.status_history.order_by('-changed_at', '-id')

        return {
            'order_id': str(order.pk),
            'order_number': order.order_number,
            'status': order.status,
            'table': _serialize_table(order.table),
            'customer_notes': order.customer_notes,
            **_serialize_amounts(order),
            'created_by': order.created_by,
            'closed_by': order.closed_by,
            'created_at': order.created_at.isoformat(),
            'closed_at': order.closed_at.isoformat() if order.closed_at else None,
            'elapsed_seconds': order.elapsed_seconds,
            'items': [_serialize_item_detail(item) for item in order.items.all()],
            'status_history': [_serialize_history(entry) for entry in history],
            'payment': _serialize_payment(payment) if payment else None,
            'suggested_status': order.suggested_status,
        }
