"""
Restaurant Orders Module Configuration

Order-to-payment workflow for table-service restaurants: order intake,
prep sector routing, kitchen/bar queues and table checkout.
"""
from django.utils.translation import gettext_lazy as _

MODULE_ID = "restaurant_orders"
MODULE_NAME = _("Restaurant Orders")
MODULE_VERSION = "1.0.0"
MODULE_CATEGORY = "pos"

MODULE_INDUSTRIES = ["restaurant", "bar", "cafe"]

# Defaults; hosts override through settings.RESTAURANT_ORDERS (see conf.py).
SETTINGS = {
    "default_vat_rate": "10.00",
    "default_tip_percentages": [5, 10, 15],
    "default_currency": "EUR",
    "max_tip_percentage": 100,
    "max_items_per_order": 100,
    "max_item_quantity": 999,
    "max_item_notes_length": 500,
    "max_customer_notes_length": 1000,
    # Per table; None disables throttling.
    "order_rate_limit": {"limit": 5, "window_seconds": 60},
    "default_sector_statuses": ["PENDING", "IN_PROGRESS", "READY"],
    "stats_window_hours": 24,
}
