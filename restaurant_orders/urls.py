"""Restaurant Orders URL Configuration"""

from django.urls import path
from . import views

app_name = 'restaurant_orders'

urlpatterns = [
    # Public (customer)
    path('api/public/orders/', views.api_create_order, name='api_create_order'),
    path(
        'api/public/<slug:tenant_slug>/<str:table_code>/orders/<int:order_number>/',
        views.api_order_status, name='api_order_status',
    ),
    path(
        'api/public/<slug:tenant_slug>/<str:table_code>/',
        views.api_validate_table, name='api_validate_table',
    ),

    # Prep sectors
    path('api/sectors/<str:sector_code>/items/', views.api_sector_items, name='api_sector_items'),
    path('api/sectors/<str:sector_code>/stats/', views.api_sector_stats, name='api_sector_stats'),
    path(
        'api/sectors/<str:sector_code>/orders/<uuid:order_id>/advance/',
        views.api_advance_ticket, name='api_advance_ticket',
    ),
    path('api/items/bulk-status/', views.api_bulk_item_status, name='api_bulk_item_status'),
    path('api/items/<uuid:item_id>/status/', views.api_item_status, name='api_item_status'),

    # Order workflow
    path('api/orders/', views.api_list_orders, name='api_list_orders'),
    path('api/orders/<uuid:order_id>/', views.api_order_detail, name='api_order_detail'),
    path('api/orders/<uuid:order_id>/transition/', views.api_transition_order, name='api_transition_order'),
    path('api/orders/<uuid:order_id>/tip/', views.api_adjust_tip, name='api_adjust_tip'),
    path('api/orders/<uuid:order_id>/pay/', views.api_pay_order, name='api_pay_order'),

    # Tables & checkout
    path('api/tables/<uuid:table_id>/bill/', views.api_table_bill, name='api_table_bill'),
    path('api/tables/<uuid:table_id>/close/', views.api_close_table, name='api_close_table'),
]
