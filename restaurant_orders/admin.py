from django.contrib import admin
from .forms import CategoryForm, PrepSectorForm
from .models import (
    Tenant,
    Table,
    PrepSector,
    Category,
    Dish,
    OrdersSettings,
    Order,
    OrderItem,
    OrderStatusHistory,
    Payment,
)


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'slug']


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ['number', 'name', 'tenant', 'code', 'status', 'is_active']
    list_filter = ['tenant', 'status', 'is_active']
    search_fields = ['name', 'code']


@admin.register(PrepSector)
class PrepSectorAdmin(admin.ModelAdmin):
    form = PrepSectorForm
    list_display = ['name', 'code', 'tenant']
    list_filter = ['tenant']


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    form = CategoryForm
    list_display = ['name', 'tenant', 'prep_sector', 'sort_order', 'is_active']
    list_filter = ['tenant', 'prep_sector', 'is_active']


@admin.register(Dish)
class DishAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price', 'is_available', 'is_in_stock']
    list_filter = ['tenant', 'category', 'is_available', 'is_in_stock']
    search_fields = ['name']


@admin.register(OrdersSettings)
class OrdersSettingsAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'vat_rate', 'tip_enabled', 'currency', 'require_items_resolved_on_close']


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = [
        'dish', 'dish_name', 'prep_sector', 'unit_price', 'quantity', 'status',
        'created_at', 'started_at', 'completed_at', 'served_at',
    ]


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ['from_status', 'to_status', 'changed_at', 'changed_by', 'notes']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'tenant', 'table', 'status', 'total', 'created_at']
    list_filter = ['tenant', 'status', 'created_at']
    search_fields = ['order_number']
    # Status and money only change through the services.
    readonly_fields = ['order_number', 'status', 'subtotal', 'vat_amount', 'tip_amount', 'total', 'closed_at', 'closed_by']
    inlines = [OrderItemInline, OrderStatusHistoryInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['order', 'method', 'status', 'amount', 'paid_at']
    list_filter = ['method', 'status']
    search_fields = ['order__order_number', 'reference']
