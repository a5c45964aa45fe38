"""
Sector Dispatcher

Routes items to prep sectors and serves the per-sector work queues that
kitchen and bar consoles poll.
"""

import logging
import uuid
from datetime import timedelta
from typing import Dict, List, Any

from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from ..conf import get_setting
from ..exceptions import (
    InvalidTransition,
    ItemNotFound,
    OrderNotFound,
    SectorNotFound,
    UnresolvedSector,
    ValidationError,
)
from ..lifecycle import (
    ItemStatus,
    ORDER_TERMINAL,
    SECTOR_VIEW_STATUSES,
    item_predecessor,
)
from ..models import Dish, Order, OrderItem, PrepSector
from ..signals import items_status_changed, send_on_commit
from .item_service import ItemService

logger = logging.getLogger(__name__)

# Bucket key per item status, in display order
BUCKETS = {
    ItemStatus.PENDING: 'pending',
    ItemStatus.IN_PROGRESS: 'in_progress',
    ItemStatus.READY: 'ready',
}


def _get_sector(tenant, sector_code) -> PrepSector:
    sector = PrepSector.objects.filter(tenant=tenant, code__iexact=sector_code or '').first()
    if sector is None:
        raise SectorNotFound(sector_code)
    return sector


def _clean_statuses(statuses) -> List[ItemStatus]:
    if not statuses:
        return [ItemStatus(s) for s in get_setting('default_sector_statuses')]

    cleaned = []
    for raw in statuses:
        try:
            status = ItemStatus(str(raw).upper())
        except ValueError:
            status = None
        if status not in SECTOR_VIEW_STATUSES:
            raise ValidationError(
                f"Unsupported status filter: {raw}",
                errors={'status': [f"Must be among {', '.join(SECTOR_VIEW_STATUSES)}"]},
            )
        if status not in cleaned:
            cleaned.append(status)
    return cleaned


class SectorDispatcher:
    """Prep sector routing and queues."""

    # =========================================================================
    # Assignment
    # =========================================================================

    @staticmethod
    def resolve_sector(dish: Dish) -> PrepSector:
        """Prep sector bound to the dish's category."""
        sector = dish.prep_sector
        if sector is None:
            logger.warning("Dish %s (%s) has no prep sector", dish.pk, dish.name)
            raise UnresolvedSector(dish.pk)
        return sector

    # =========================================================================
    # Sector view
    # =========================================================================

    @staticmethod
    def get_items_by_sector(tenant, sector_code: str, statuses=None) -> Dict[str, Any]:
        """
        Open work for one sector, as tickets.

        A ticket is the set of an order's items in this sector that share a
        status. Each bucket lists tickets oldest order first, so the longest
        waiting table is always on top.
        """
        sector = _get_sector(tenant, sector_code)
        statuses = _clean_statuses(statuses)

        items = (
            OrderItem.objects
            .filter(prep_sector=sector, status__in=statuses)
            .exclude(order__status__in=ORDER_TERMINAL)
            .select_related('order__table', 'dish')
            .order_by('order__created_at', 'order__order_number', 'created_at', 'id')
        )

        tickets = {}
        for item in items:
            key = (item.order_id, item.status)
            ticket = tickets.get(key)
            if ticket is None:
                order = item.order
                ticket = tickets[key] = {
                    'order_id': str(order.pk),
                    'order_number': order.order_number,
                    'table_number': order.table.number,
                    'table_name': order.table.name,
                    'customer_notes': order.customer_notes,
                    'created_at': order.created_at.isoformat(),
                    'elapsed_seconds': order.elapsed_seconds,
                    'status': item.status,
                    'items': [],
                }
            ticket['items'].append({
                'id': str(item.pk),
                'dish_id': str(item.dish_id),
                'dish_name': item.dish_name,
                'quantity': item.quantity,
                'notes': item.notes,
                'allergens': list(item.dish.allergens or []),
                'status': item.status,
            })

        result = {
            'sector': {'id': str(sector.pk), 'code': sector.code, 'name': sector.name},
        }
        for status, bucket in BUCKETS.items():
            result[bucket] = [t for t in tickets.values() if t['status'] == status] if status in statuses else []
        return result

    # =========================================================================
    # Transitions
    # =========================================================================

    @staticmethod
    @transaction.atomic
    def bulk_update_item_status(tenant, item_ids, target_status) -> int:
        """
        Move every listed item to ``target_status`` atomically.

        Rows are locked in primary key order so two consoles updating
        overlapping sets cannot deadlock. One ineligible item fails the batch.
        """
        if not item_ids:
            raise ValidationError("At least one item is required", errors={'item_ids': ['This field is required.']})

        try:
            ids = sorted({str(uuid.UUID(str(i))) for i in item_ids})
        except ValueError:
            raise ValidationError("Invalid item id", errors={'item_ids': ['Must be a list of item ids.']})
        items = list(
            OrderItem.objects
            .select_for_update()
            .select_related('order')
            .filter(pk__in=ids, order__tenant=tenant)
            .order_by('pk')
        )
        found = {str(item.pk) for item in items}
        missing = [i for i in ids if i not in found]
        if missing:
            raise ItemNotFound(missing[0] if len(missing) == 1 else ', '.join(missing))

        updated = ItemService.apply(items, target_status)
        send_on_commit(
            items_status_changed, sender=OrderItem,
            item_ids=ids, target_status=str(target_status),
        )
        logger.info("Bulk item update: %s items -> %s", updated, target_status)
        return updated

    @staticmethod
    @transaction.atomic
    def advance_ticket(tenant, order_id, sector_code: str, target_status) -> int:
        """
        Advance a whole ticket: every item of the order in this sector that
        sits one step before ``target_status``.

        Used for "start", "mark all ready" and "clear ticket" on the console.
        """
        try:
            target = ItemStatus(target_status)
        except ValueError:
            raise ValidationError(f"Unknown item status: {target_status}", errors={'status': ['Invalid status.']})

        source = item_predecessor(target)
        if source is None:
            raise ValidationError(
                f"A ticket cannot be advanced to {target}",
                errors={'status': ['Must be IN_PROGRESS, READY or SERVED.']},
            )

        sector = _get_sector(tenant, sector_code)
        if not Order.objects.filter(pk=order_id, tenant=tenant).exists():
            raise OrderNotFound(order_id)

        ids = list(
            OrderItem.objects
            .filter(order_id=order_id, prep_sector=sector, status=source)
            .values_list('pk', flat=True)
        )
        if not ids:
            raise InvalidTransition(
                current=source, target=target,
                message=f"No {source} items in {sector.code} for this order",
            )
        return SectorDispatcher.bulk_update_item_status(tenant, ids, target)

    # =========================================================================
    # Stats
    # =========================================================================

    @staticmethod
    def get_sector_stats(tenant, sector_code: str) -> Dict[str, Any]:
        """Queue sizes and recent ticket time for a sector."""
        sector = _get_sector(tenant, sector_code)
        open_items = (
            OrderItem.objects
            .filter(prep_sector=sector, status__in=SECTOR_VIEW_STATUSES)
            .exclude(order__status__in=ORDER_TERMINAL)
        )

        counts = {
            row['status']: row['count']
            for row in open_items.values('status').annotate(count=Count('id'))
        }
        active_orders = open_items.values('order_id').distinct().count()

        since = timezone.now() - timedelta(hours=get_setting('stats_window_hours'))
        served = list(
            OrderItem.objects
            .filter(prep_sector=sector, status=ItemStatus.SERVED, served_at__gte=since)
            .values_list('created_at', 'served_at')
        )
        avg_ticket_seconds = None
        if served:
            total = sum((served_at - created_at).total_seconds() for created_at, served_at in served)
            avg_ticket_seconds = int(total / len(served))

        return {
            'sector': {'id': str(sector.pk), 'code': sector.code, 'name': sector.name},
            'active_orders': active_orders,
            'pending': counts.get(ItemStatus.PENDING, 0),
            'in_progress': counts.get(ItemStatus.IN_PROGRESS, 0),
            'ready': counts.get(ItemStatus.READY, 0),
            'served_recently': len(served),
            'avg_ticket_seconds': avg_ticket_seconds,
        }
