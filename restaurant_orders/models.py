"""
Restaurant Orders Models

Ledger for the order-to-payment workflow.
Features:
- Tenants, tables and prep sectors (kitchen, bar, ...)
- Menu categories bound to a prep sector, dishes with allergens
- Orders with items routed to the sector of their dish's category
- Append-only order status history
- One payment per order, aggregated per table at checkout
- Per-tenant order number counter
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from . import money
from .conf import get_setting
from .lifecycle import (
    ItemStatus,
    OrderStatus,
    ORDER_TERMINAL,
    suggest_order_status,
)


class TimeStampedModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# =============================================================================
# Tenants & Tables
# =============================================================================

class Tenant(TimeStampedModel):
    """Isolation boundary; every other record belongs to one tenant."""

    name = models.CharField(max_length=200, verbose_name=_('Name'))
    slug = models.SlugField(max_length=100, unique=True, verbose_name=_('Slug'))
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'restaurant_orders_tenant'
        verbose_name = _('Tenant')
        verbose_name_plural = _('Tenants')

    def __str__(self):
        return self.name


class Table(TimeStampedModel):

    class Status(models.TextChoices):
        AVAILABLE = 'AVAILABLE', _('Available')
        OCCUPIED = 'OCCUPIED', _('Occupied')
        RESERVED = 'RESERVED', _('Reserved')
        CLEANING = 'CLEANING', _('Cleaning')

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='tables')
    number = models.PositiveIntegerField(verbose_name=_('Number'))
    name = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Name'))
    code = models.CharField(max_length=6, unique=True, verbose_name=_('Access Code'))
    capacity = models.PositiveIntegerField(default=4)
    status = models.CharField(
        max_length=20, choices=Status.choices,
        default=Status.AVAILABLE, verbose_name=_('Status'),
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'restaurant_orders_table'
        verbose_name = _('Table')
        verbose_name_plural = _('Tables')
        ordering = ['number']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'number'], name='ro_table_unique_number'),
        ]

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        if self.name:
            return f"{self.number} - {self.name}"
        return str(self.number)


# =============================================================================
# Menu & Prep Sectors
# =============================================================================

class PrepSector(TimeStampedModel):
    """
    Preparation station items are routed to.
    Examples: Kitchen (KITCHEN), Bar (BAR).
    """
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='prep_sectors')
    name = models.CharField(max_length=100, verbose_name=_('Name'))
    code = models.CharField(max_length=20, verbose_name=_('Code'))

    class Meta:
        db_table = 'restaurant_orders_prep_sector'
        verbose_name = _('Prep Sector')
        verbose_name_plural = _('Prep Sectors')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'code'], name='ro_sector_unique_code'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.code = self.code.upper()
        super().save(*args, **kwargs)


class Category(TimeStampedModel):
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='categories')
    name = models.CharField(max_length=100, verbose_name=_('Name'))
    prep_sector = models.ForeignKey(
        PrepSector, on_delete=models.PROTECT,
        null=True, blank=True,
        related_name='categories', verbose_name=_('Prep Sector'),
    )
    sort_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'restaurant_orders_category'
        verbose_name = _('Category')
        verbose_name_plural = _('Categories')
        ordering = ['sort_order', 'name']

    def __str__(self):
        return self.name


class Dish(TimeStampedModel):
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='dishes')
    category = models.ForeignKey(
        Category, on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='dishes', verbose_name=_('Category'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Name'))
    price = models.DecimalField(
        max_digits=10, decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        verbose_name=_('Price'),
    )
    allergens = models.JSONField(default=list, blank=True, verbose_name=_('Allergens'))
    is_available = models.BooleanField(default=True)
    is_in_stock = models.BooleanField(default=True)

    class Meta:
        db_table = 'restaurant_orders_dish'
        verbose_name = _('Dish')
        verbose_name_plural = _('Dishes')
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def prep_sector(self):
        if self.category_id is None:
            return None
        return self.category.prep_sector


# =============================================================================
# Settings & Counters
# =============================================================================

class OrdersSettings(TimeStampedModel):
    """Per-tenant configuration for orders."""

    tenant = models.OneToOneField(Tenant, on_delete=models.CASCADE, related_name='orders_settings')
    vat_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('10.00'))
    tip_enabled = models.BooleanField(default=True)
    tip_percentages = models.JSONField(default=list, blank=True)
    currency = models.CharField(max_length=3, default='EUR')
    require_items_resolved_on_close = models.BooleanField(default=False)

    class Meta:
        db_table = 'restaurant_orders_settings'
        verbose_name = _('Orders Settings')
        verbose_name_plural = _('Orders Settings')

    def __str__(self):
        return f"Orders Settings ({self.tenant})"

    @classmethod
    def get_settings(cls, tenant):
        settings, _ = cls.objects.get_or_create(
            tenant=tenant,
            defaults={
                'vat_rate': Decimal(get_setting('default_vat_rate')),
                'tip_percentages': list(get_setting('default_tip_percentages')),
                'currency': get_setting('default_currency'),
            },
        )
        return settings


class OrderCounter(TimeStampedModel):
    """Last order number issued for a tenant. Only ever incremented."""

    tenant = models.OneToOneField(Tenant, on_delete=models.CASCADE, related_name='order_counter')
    last_number = models.PositiveBigIntegerField(default=0)

    class Meta:
        db_table = 'restaurant_orders_counter'
        verbose_name = _('Order Counter')
        verbose_name_plural = _('Order Counters')

    def __str__(self):
        return f"{self.tenant}: {self.last_number}"


# =============================================================================
# Orders
# =============================================================================

class Order(TimeStampedModel):
    """A customer's submission for one table."""

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='orders')
    table = models.ForeignKey(
        Table, on_delete=models.PROTECT,
        related_name='orders', verbose_name=_('Table'),
    )
    order_number = models.PositiveBigIntegerField(verbose_name=_('Order Number'))
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices,
        default=OrderStatus.PENDING, verbose_name=_('Status'),
    )
    customer_notes = models.TextField(blank=True, default='')

    # Financial
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    vat_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tip_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    # Staff references
    created_by = models.CharField(max_length=100, blank=True, default='')
    closed_by = models.CharField(max_length=100, blank=True, default='')
    closed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Closed At'))

    class Meta:
        db_table = 'restaurant_orders_order'
        verbose_name = _('Order')
        verbose_name_plural = _('Orders')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'order_number'], name='ro_order_unique_number'),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='ro_order_tenant_status_idx'),
            models.Index(fields=['tenant', 'table'], name='ro_order_tenant_table_idx'),
            models.Index(fields=['tenant', 'created_at'], name='ro_order_tenant_created_idx'),
        ]

    def __str__(self):
        return f"Order #{self.order_number}"

    # ---- Properties ----

    @property
    def is_open(self):
        return self.status not in ORDER_TERMINAL

    @property
    def elapsed_seconds(self):
        return int((timezone.now() - self.created_at).total_seconds())

    @property
    def suggested_status(self):
        return suggest_order_status(
            self.status, [item.status for item in self.items.all()],
        )

    # ---- Financial ----

    def set_amounts(self, subtotal_minor, vat_minor, tip_minor):
        self.subtotal = money.from_minor(subtotal_minor)
        self.vat_amount = money.from_minor(vat_minor)
        self.tip_amount = money.from_minor(tip_minor)
        self.total = money.from_minor(subtotal_minor + vat_minor + tip_minor)

    @property
    def total_minor(self):
        return money.to_minor(self.total)


class OrderItem(TimeStampedModel):
    """Line item, routed to the prep sector captured at creation."""

    order = models.ForeignKey(
        Order, on_delete=models.CASCADE,
        related_name='items', verbose_name=_('Order'),
    )
    dish = models.ForeignKey(
        Dish, on_delete=models.PROTECT,
        related_name='order_items', verbose_name=_('Dish'),
    )
    prep_sector = models.ForeignKey(
        PrepSector, on_delete=models.PROTECT,
        related_name='order_items', verbose_name=_('Prep Sector'),
    )

    # Snapshot
    dish_name = models.CharField(max_length=200, verbose_name=_('Dish Name'))
    unit_price = models.DecimalField(
        max_digits=10, decimal_places=2,
        default=Decimal('0.00'), verbose_name=_('Unit Price'),
    )

    quantity = models.PositiveIntegerField(
        default=1, validators=[MinValueValidator(1)],
        verbose_name=_('Quantity'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Special Instructions'))

    status = models.CharField(
        max_length=20, choices=ItemStatus.choices,
        default=ItemStatus.PENDING, verbose_name=_('Status'),
    )

    # Timing
    started_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Started At'))
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Completed At'))
    served_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Served At'))

    class Meta:
        db_table = 'restaurant_orders_order_item'
        verbose_name = _('Order Item')
        verbose_name_plural = _('Order Items')
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['prep_sector', 'status'], name='ro_item_sector_status_idx'),
            models.Index(fields=['order'], name='ro_item_order_idx'),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.dish_name}"

    @property
    def line_total(self):
        return money.from_minor(money.line_total(self.quantity, self.unit_price))

    @property
    def prep_time_seconds(self):
        if not self.started_at or not self.completed_at:
            return None
        return int((self.completed_at - self.started_at).total_seconds())


class OrderStatusHistory(models.Model):
    """One row per order status transition. Never updated or deleted."""

    id = models.BigAutoField(primary_key=True)
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE,
        related_name='status_history', verbose_name=_('Order'),
    )
    from_status = models.CharField(
        max_length=20, choices=OrderStatus.choices,
        null=True, blank=True,
    )
    to_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    changed_at = models.DateTimeField(default=timezone.now)
    changed_by = models.CharField(max_length=100, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'restaurant_orders_status_history'
        verbose_name = _('Order Status History')
        verbose_name_plural = _('Order Status History')
        ordering = ['changed_at', 'id']
        indexes = [
            models.Index(fields=['order'], name='ro_history_order_idx'),
        ]

    def __str__(self):
        return f"{self.order_id}: {self.from_status or '-'} -> {self.to_status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Order status history is append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Order status history is append-only")


# =============================================================================
# Payments
# =============================================================================

class Payment(TimeStampedModel):

    class Method(models.TextChoices):
        CASH = 'CASH', _('Cash')
        CARD = 'CARD', _('Card')
        BIZUM = 'BIZUM', _('Bizum')

    class Status(models.TextChoices):
        PENDING = 'PENDING', _('Pending')
        PROCESSING = 'PROCESSING', _('Processing')
        COMPLETED = 'COMPLETED', _('Completed')
        FAILED = 'FAILED', _('Failed')
        REFUNDED = 'REFUNDED', _('Refunded')

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='payments')
    order = models.OneToOneField(
        Order, on_delete=models.PROTECT,
        related_name='payment', verbose_name=_('Order'),
    )
    method = models.CharField(max_length=20, choices=Method.choices, verbose_name=_('Method'))
    status = models.CharField(
        max_length=20, choices=Status.choices,
        default=Status.PENDING, verbose_name=_('Status'),
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2, verbose_name=_('Amount'))
    reference = models.CharField(max_length=100, blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Paid At'))

    class Meta:
        db_table = 'restaurant_orders_payment'
        verbose_name = _('Payment')
        verbose_name_plural = _('Payments')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.get_method_display()} {self.amount} ({self.get_status_display()})"
