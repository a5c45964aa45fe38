"""
Initial migration for Restaurant Orders module.
"""

from decimal import Decimal
import uuid

from django.db import migrations, models
import django.core.validators
import django.db.models.deletion
import django.utils.timezone


ORDER_STATUS_CHOICES = [
    ('PENDING', 'Pending'),
    ('CONFIRMED', 'Confirmed'),
    ('IN_PROGRESS', 'In Progress'),
    ('READY', 'Ready'),
    ('DELIVERED', 'Delivered'),
    ('PAID', 'Paid'),
    ('CANCELLED', 'Cancelled'),
]

ITEM_STATUS_CHOICES = [
    ('PENDING', 'Pending'),
    ('IN_PROGRESS', 'In Progress'),
    ('READY', 'Ready'),
    ('SERVED', 'Served'),
    ('CANCELLED', 'Cancelled'),
]


def _base_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
        ('updated_at', models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Tenant',
            fields=_base_fields() + [
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('slug', models.SlugField(max_length=100, unique=True, verbose_name='Slug')),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'verbose_name': 'Tenant',
                'verbose_name_plural': 'Tenants',
                'db_table': 'restaurant_orders_tenant',
            },
        ),
        migrations.CreateModel(
            name='Table',
            fields=_base_fields() + [
                ('number', models.PositiveIntegerField(verbose_name='Number')),
                ('name', models.CharField(blank=True, default='', max_length=100, verbose_name='Name')),
                ('code', models.CharField(max_length=6, unique=True, verbose_name='Access Code')),
                ('capacity', models.PositiveIntegerField(default=4)),
                ('status', models.CharField(choices=[('AVAILABLE', 'Available'), ('OCCUPIED', 'Occupied'), ('RESERVED', 'Reserved'), ('CLEANING', 'Cleaning')], default='AVAILABLE', max_length=20, verbose_name='Status')),
                ('is_active', models.BooleanField(default=True)),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tables', to='restaurant_orders.tenant')),
            ],
            options={
                'verbose_name': 'Table',
                'verbose_name_plural': 'Tables',
                'db_table': 'restaurant_orders_table',
                'ordering': ['number'],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'number'), name='ro_table_unique_number')],
            },
        ),
        migrations.CreateModel(
            name='PrepSector',
            fields=_base_fields() + [
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('code', models.CharField(max_length=20, verbose_name='Code')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='prep_sectors', to='restaurant_orders.tenant')),
            ],
            options={
                'verbose_name': 'Prep Sector',
                'verbose_name_plural': 'Prep Sectors',
                'db_table': 'restaurant_orders_prep_sector',
                'ordering': ['name'],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'code'), name='ro_sector_unique_code')],
            },
        ),
        migrations.CreateModel(
            name='Category',
            fields=_base_fields() + [
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('prep_sector', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='categories', to='restaurant_orders.prepsector', verbose_name='Prep Sector')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='categories', to='restaurant_orders.tenant')),
            ],
            options={
                'verbose_name': 'Category',
                'verbose_name_plural': 'Categories',
                'db_table': 'restaurant_orders_category',
                'ordering': ['sort_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Dish',
            fields=_base_fields() + [
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='Price')),
                ('allergens', models.JSONField(blank=True, default=list, verbose_name='Allergens')),
                ('is_available', models.BooleanField(default=True)),
                ('is_in_stock', models.BooleanField(default=True)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='dishes', to='restaurant_orders.category', verbose_name='Category')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='dishes', to='restaurant_orders.tenant')),
            ],
            options={
                'verbose_name': 'Dish',
                'verbose_name_plural': 'Dishes',
                'db_table': 'restaurant_orders_dish',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='OrdersSettings',
            fields=_base_fields() + [
                ('vat_rate', models.DecimalField(decimal_places=2, default=Decimal('10.00'), max_digits=5)),
                ('tip_enabled', models.BooleanField(default=True)),
                ('tip_percentages', models.JSONField(blank=True, default=list)),
                ('currency', models.CharField(default='EUR', max_length=3)),
                ('require_items_resolved_on_close', models.BooleanField(default=False)),
                ('tenant', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='orders_settings', to='restaurant_orders.tenant')),
            ],
            options={
                'verbose_name': 'Orders Settings',
                'verbose_name_plural': 'Orders Settings',
                'db_table': 'restaurant_orders_settings',
            },
        ),
        migrations.CreateModel(
            name='OrderCounter',
            fields=_base_fields() + [
                ('last_number', models.PositiveBigIntegerField(default=0)),
                ('tenant', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='order_counter', to='restaurant_orders.tenant')),
            ],
            options={
                'verbose_name': 'Order Counter',
                'verbose_name_plural': 'Order Counters',
                'db_table': 'restaurant_orders_counter',
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=_base_fields() + [
                ('order_number', models.PositiveBigIntegerField(verbose_name='Order Number')),
                ('status', models.CharField(choices=ORDER_STATUS_CHOICES, default='PENDING', max_length=20, verbose_name='Status')),
                ('customer_notes', models.TextField(blank=True, default='')),
                ('subtotal', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('vat_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('tip_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('created_by', models.CharField(blank=True, default='', max_length=100)),
                ('closed_by', models.CharField(blank=True, default='', max_length=100)),
                ('closed_at', models.DateTimeField(blank=True, null=True, verbose_name='Closed At')),
                ('table', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='restaurant_orders.table', verbose_name='Table')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='orders', to='restaurant_orders.tenant')),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'db_table': 'restaurant_orders_order',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['tenant', 'status'], name='ro_order_tenant_status_idx'),
                    models.Index(fields=['tenant', 'table'], name='ro_order_tenant_table_idx'),
                    models.Index(fields=['tenant', 'created_at'], name='ro_order_tenant_created_idx'),
                ],
                'constraints': [models.UniqueConstraint(fields=('tenant', 'order_number'), name='ro_order_unique_number')],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=_base_fields() + [
                ('dish_name', models.CharField(max_length=200, verbose_name='Dish Name')),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, verbose_name='Unit Price')),
                ('quantity', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)], verbose_name='Quantity')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Special Instructions')),
                ('status', models.CharField(choices=ITEM_STATUS_CHOICES, default='PENDING', max_length=20, verbose_name='Status')),
                ('started_at', models.DateTimeField(blank=True, null=True, verbose_name='Started At')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Completed At')),
                ('served_at', models.DateTimeField(blank=True, null=True, verbose_name='Served At')),
                ('dish', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_items', to='restaurant_orders.dish', verbose_name='Dish')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='restaurant_orders.order', verbose_name='Order')),
                ('prep_sector', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_items', to='restaurant_orders.prepsector', verbose_name='Prep Sector')),
            ],
            options={
                'verbose_name': 'Order Item',
                'verbose_name_plural': 'Order Items',
                'db_table': 'restaurant_orders_order_item',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['prep_sector', 'status'], name='ro_item_sector_status_idx'),
                    models.Index(fields=['order'], name='ro_item_order_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderStatusHistory',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('from_status', models.CharField(blank=True, choices=ORDER_STATUS_CHOICES, max_length=20, null=True)),
                ('to_status', models.CharField(choices=ORDER_STATUS_CHOICES, max_length=20)),
                ('changed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('changed_by', models.CharField(blank=True, default='', max_length=100)),
                ('notes', models.TextField(blank=True, default='')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_history', to='restaurant_orders.order', verbose_name='Order')),
            ],
            options={
                'verbose_name': 'Order Status History',
                'verbose_name_plural': 'Order Status History',
                'db_table': 'restaurant_orders_status_history',
                'ordering': ['changed_at', 'id'],
                'indexes': [models.Index(fields=['order'], name='ro_history_order_idx')],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=_base_fields() + [
                ('method', models.CharField(choices=[('CASH', 'Cash'), ('CARD', 'Card'), ('BIZUM', 'Bizum')], max_length=20, verbose_name='Method')),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('PROCESSING', 'Processing'), ('COMPLETED', 'Completed'), ('FAILED', 'Failed'), ('REFUNDED', 'Refunded')], default='PENDING', max_length=20, verbose_name='Status')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Amount')),
                ('reference', models.CharField(blank=True, default='', max_length=100)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='Paid At')),
                ('order', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='payment', to='restaurant_orders.order', verbose_name='Order')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='restaurant_orders.tenant')),
            ],
            options={
                'verbose_name': 'Payment',
                'verbose_name_plural': 'Payments',
                'db_table': 'restaurant_orders_payment',
                'ordering': ['-created_at'],
            },
        ),
    ]
