"""
Item Service

Item lifecycle: PENDING -> IN_PROGRESS -> READY -> SERVED, CANCELLED from any
non-terminal status. Items of a PAID or CANCELLED order are frozen.
"""

import logging
from collections import defaultdict
from typing import Iterable, List

from django.db import transaction
from django.utils import timezone

from ..exceptions import InvalidTransition, ItemNotFound, ValidationError
from ..lifecycle import ItemStatus, ORDER_TERMINAL, is_legal_item_transition
from ..models import OrderItem

logger = logging.getLogger(__name__)

# Timestamp stamped when an item enters a status
TIMESTAMP_FIELDS = {
    ItemStatus.IN_PROGRESS: 'started_at',
    ItemStatus.READY: 'completed_at',
    ItemStatus.SERVED: 'served_at',
}


def _parse_status(target) -> ItemStatus:
    try:
        return ItemStatus(target)
    except ValueError:
        raise ValidationError(
            f"Unknown item status: {target}",
            errors={'status': [f"Must be one of {', '.join(ItemStatus.values)}"]},
        )


class ItemService:
    """Guards and applies item status changes."""

    @staticmethod
    def check_transition(item: OrderItem, target) -> None:
        """Raise InvalidTransition unless ``item`` may move to ``target``."""
        target = _parse_status(target)

        if item.order.status in ORDER_TERMINAL:
            logger.warning(
                "Rejected item %s -> %s: order %s is %s",
                item.pk, target, item.order.order_number, item.order.status,
            )
            raise InvalidTransition(
                current=item.status, target=target, item_ids=[item.pk],
                message=f"Order #{item.order.order_number} is {item.order.status}; its items cannot change",
            )

        if not is_legal_item_transition(item.status, target):
            logger.warning("Rejected item %s: %s -> %s", item.pk, item.status, target)
            raise InvalidTransition(current=item.status, target=target, item_ids=[item.pk])

    @staticmethod
    def apply(items: Iterable[OrderItem], target) -> int:
        """
        Move every item in ``items`` to ``target``, or none of them.

        All items are checked before anything is written. Each UPDATE is
        conditional on the status that was checked (and on the parent order
        still being open), so a row changed by someone else in between makes
        the whole batch fail instead of being overwritten.
        """
        target = _parse_status(target)
        items: List[OrderItem] = list(items)

        for item in items:
            ItemService.check_transition(item, target)

        by_status = defaultdict(list)
        for item in items:
            by_status[item.status].append(item.pk)

        now = timezone.now()
        values = {'status': target, 'updated_at': now}
        stamp = TIMESTAMP_FIELDS.get(target)
        if stamp:
            values[stamp] = now

        with transaction.atomic():
            updated = 0
            for current, ids in by_status.items():
                count = (
                    OrderItem.objects
                    .filter(pk__in=ids, status=current)
                    .exclude(order__status__in=ORDER_TERMINAL)
                    .update(**values)
                )
                if count != len(ids):
                    raise InvalidTransition(
                        current=current, target=target, item_ids=ids,
                        message="Items were changed concurrently; reload and retry",
                    )
                updated += count

        for item in items:
            item.status = target
            if stamp:
                setattr(item, stamp, now)

        return updated

    @staticmethod
    @transaction.atomic
    def transition_item(tenant, item_id, target) -> OrderItem:
        """Lock one item and move it to ``target``."""
        try:
            item = (
                OrderItem.objects
                .select_for_update()
                .select_related('order')
                .get(pk=item_id, order__tenant=tenant)
            )
        except OrderItem.DoesNotExist:
            raise ItemNotFound(item_id)

        ItemService.apply([item], target)
        logger.info("Item %s -> %s (order #%s)", item.pk, item.status, item.order.order_number)
        return item
