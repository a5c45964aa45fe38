"""
Order Numbering Service

Per-tenant, strictly increasing order numbers backed by a counter row.
"""

from django.db import transaction
from django.db.models import F

from ..models import OrderCounter


class OrderNumberService:

    @staticmethod
    def next_number(tenant) -> int:
        """
        Reserve the next order number for ``tenant``.

        Must run inside the caller's transaction: if that transaction rolls
        back, the increment rolls back with it. The UPDATE takes the row lock,
        so concurrent callers queue behind each other instead of reading the
        same value. Numbers are never reused, cancelled orders keep theirs.
        """
        if not transaction.get_connection().in_atomic_block:
            raise RuntimeError("next_number() must be called inside transaction.atomic()")

        OrderCounter.objects.get_or_create(tenant=tenant)
        OrderCounter.objects.filter(tenant=tenant).update(last_number=F('last_number') + 1)
        return OrderCounter.objects.filter(tenant=tenant).values_list('last_number', flat=True).get()
