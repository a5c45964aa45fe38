"""
Restaurant Orders Signals

Emitted after the originating transaction commits, so receivers (the host's
notification layer, a polling cache buster, ...) only ever see persisted state.
"""

from django.db import transaction
from django.dispatch import Signal

# Signals this module emits
order_created = Signal()  # Provides: order
order_status_changed = Signal()  # Provides: order, from_status, to_status, actor
items_status_changed = Signal()  # Provides: item_ids, target_status
table_closed = Signal()  # Provides: table, orders, payment_method, actor


def send_on_commit(signal, sender, **kwargs):
    """Dispatch ``signal`` once the current transaction has committed."""
    def _send():
        signal.send(sender=sender, **kwargs)
    transaction.on_commit(_send)
