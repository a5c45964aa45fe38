from django.apps import AppConfig


class RestaurantOrdersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'restaurant_orders'
    verbose_name = 'Restaurant Orders'

    def ready(self):
        from . import signals  # noqa
