from .numbering import OrderNumberService
from .item_service import ItemService
from .dispatch_service import SectorDispatcher
from .order_service import OrderService
from .checkout_service import CheckoutService

__all__ = [
    'OrderNumberService',
    'ItemService',
    'SectorDispatcher',
    'OrderService',
    'CheckoutService',
]
