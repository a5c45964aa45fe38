"""
Order and item lifecycles.

Closed status enums plus the transition tables that decide which moves are
legal. Everything here is pure: no database access, no side effects.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class OrderStatus(models.TextChoices):
    PENDING = 'PENDING', _('Pending')
    CONFIRMED = 'CONFIRMED', _('Confirmed')
    IN_PROGRESS = 'IN_PROGRESS', _('In Progress')
    READY = 'READY', _('Ready')
    DELIVERED = 'DELIVERED', _('Delivered')
    PAID = 'PAID', _('Paid')
    CANCELLED = 'CANCELLED', _('Cancelled')


class ItemStatus(models.TextChoices):
    PENDING = 'PENDING', _('Pending')
    IN_PROGRESS = 'IN_PROGRESS', _('In Progress')
    READY = 'READY', _('Ready')
    SERVED = 'SERVED', _('Served')
    CANCELLED = 'CANCELLED', _('Cancelled')


ORDER_FORWARD_PATH = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.IN_PROGRESS,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
    OrderStatus.PAID,
]

ITEM_FORWARD_PATH = [
    ItemStatus.PENDING,
    ItemStatus.IN_PROGRESS,
    ItemStatus.READY,
    ItemStatus.SERVED,
]

ORDER_TERMINAL = frozenset({OrderStatus.PAID, OrderStatus.CANCELLED})
ITEM_TERMINAL = frozenset({ItemStatus.SERVED, ItemStatus.CANCELLED})


def _build_table(path, terminal, cancelled):
    table = {}
    for index, status in enumerate(path):
        if status in terminal:
            table[status] = frozenset()
            continue
        table[status] = frozenset({path[index + 1], cancelled})
    table[cancelled] = frozenset()
    return table


ORDER_TRANSITIONS = _build_table(ORDER_FORWARD_PATH, ORDER_TERMINAL, OrderStatus.CANCELLED)
ITEM_TRANSITIONS = _build_table(ITEM_FORWARD_PATH, ITEM_TERMINAL, ItemStatus.CANCELLED)

# Items shown on a prep console, in display order.
SECTOR_VIEW_STATUSES = (ItemStatus.PENDING, ItemStatus.IN_PROGRESS, ItemStatus.READY)


def is_legal_order_transition(current, target) -> bool:
    """Return True when an order may move from ``current`` to ``target``."""
    try:
        current = OrderStatus(current)
        target = OrderStatus(target)
    except ValueError:
        return False
    return target in ORDER_TRANSITIONS[current]


def is_legal_settlement(current) -> bool:
    """
    Checkout settles an order straight to PAID from any open status.

    Staff may close a table whose food is still on the pass; only the
    checkout path takes this shortcut, ordinary transitions follow the table.
    """
    try:
        current = OrderStatus(current)
    except ValueError:
        return False
    return current not in ORDER_TERMINAL


def is_legal_item_transition(current, target) -> bool:
    """Return True when an item may move from ``current`` to ``target``."""
    try:
        current = ItemStatus(current)
        target = ItemStatus(target)
    except ValueError:
        return False
    return target in ITEM_TRANSITIONS[current]


def item_predecessor(target):
    """
    Status an item must be in to move forward to ``target``.

    Returns None for PENDING (nothing precedes it) and for CANCELLED
    (reachable from several statuses).
    """
    target = ItemStatus(target)
    if target not in ITEM_FORWARD_PATH:
        return None
    index = ITEM_FORWARD_PATH.index(target)
    return ITEM_FORWARD_PATH[index - 1] if index else None


def suggest_order_status(current, item_statuses):
    """
    Order status implied by item progress, or None.

    Cancelled items are ignored. A suggestion is only returned when it lies
    ahead of ``current`` on the forward path; reaching it may take more than
    one transition. Never applied automatically.
    """
    current = OrderStatus(current)
    if current in ORDER_TERMINAL:
        return None

    live = [ItemStatus(s) for s in item_statuses if s != ItemStatus.CANCELLED]
    if not live:
        return None

    if all(s == ItemStatus.SERVED for s in live):
        implied = OrderStatus.DELIVERED
    elif all(s in (ItemStatus.READY, ItemStatus.SERVED) for s in live):
        implied = OrderStatus.READY
    elif any(s != ItemStatus.PENDING for s in live):
        implied = OrderStatus.IN_PROGRESS
    else:
        return None

    if ORDER_FORWARD_PATH.index(implied) > ORDER_FORWARD_PATH.index(current):
        return implied
    return None
