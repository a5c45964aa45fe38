"""
Restaurant Orders Exceptions

Typed outcomes raised by the services. Views translate them to HTTP
responses; nothing in the services swallows them.
"""


class OrdersError(Exception):
    """Base class for every caller-visible failure of the orders core."""

    code = 'orders_error'
    status_code = 400

    def __init__(self, message='', **context):
        self.message = message or self.__class__.__doc__ or self.code
        self.context = context
        super().__init__(self.message)

    def as_dict(self):
        data = {'success': False, 'error': self.code, 'message': str(self.message)}
        data.update({k: v for k, v in self.context.items() if v is not None})
        return data


# =============================================================================
# Not found
# =============================================================================

class NotFound(OrdersError):
    """Requested entity does not exist or is inactive."""

    code = 'not_found'
    status_code = 404

    entity = 'Entity'

    def __init__(self, entity_id=None, message=''):
        if not message:
            if entity_id is not None:
                message = f"{self.entity} {entity_id} not found"
            else:
                message = f"{self.entity} not found"
        super().__init__(message, entity_id=str(entity_id) if entity_id is not None else None)


class TenantNotFound(NotFound):
    entity = 'Restaurant'


class TableNotFound(NotFound):
    entity = 'Table'


class OrderNotFound(NotFound):
    entity = 'Order'


class ItemNotFound(NotFound):
    entity = 'Order item'


class SectorNotFound(NotFound):
    entity = 'Prep sector'


class DishUnavailable(NotFound):
    """One or more dishes are missing, unavailable or out of stock."""

    code = 'dish_unavailable'
    entity = 'Dish'

    def __init__(self, dish_ids):
        self.dish_ids = [str(d) for d in dish_ids]
        OrdersError.__init__(
            self,
            f"Some dishes are no longer available: {', '.join(self.dish_ids)}",
            dish_ids=self.dish_ids,
        )


# =============================================================================
# Workflow
# =============================================================================

class InvalidTransition(OrdersError):
    """Illegal status change, including one decided against stale state."""

    code = 'invalid_transition'
    status_code = 409

    def __init__(self, current=None, target=None, item_ids=None, message=''):
        self.current = current
        self.target = target
        self.item_ids = [str(i) for i in item_ids] if item_ids else []
        if not message:
            message = f"Cannot transition from {current} to {target}"
        super().__init__(
            message,
            current=str(current) if current is not None else None,
            target=str(target) if target is not None else None,
            item_ids=self.item_ids or None,
        )


class UnresolvedSector(OrdersError):
    """A dish's category is not bound to a prep sector."""

    code = 'unresolved_sector'
    status_code = 422

    def __init__(self, dish_id):
        self.dish_id = str(dish_id)
        super().__init__(f"Dish {dish_id} has no prep sector", dish_id=self.dish_id)


class NoOpenOrders(OrdersError):
    """The table has no order left to close."""

    code = 'no_open_orders'
    status_code = 409

    def __init__(self, table_id):
        super().__init__(f"No open orders for table {table_id}", table_id=str(table_id))


class PaymentExists(OrdersError):
    """A payment is already recorded for the order."""

    code = 'payment_exists'
    status_code = 409

    def __init__(self, order_id):
        super().__init__(f"Payment already exists for order {order_id}", order_id=str(order_id))


class ValidationError(OrdersError):
    """Malformed input: empty item list, bad quantity, unknown status."""

    code = 'validation_error'
    status_code = 400

    def __init__(self, message='', errors=None):
        self.errors = errors or {}
        super().__init__(message or 'Invalid data', errors=self.errors or None)


class RateLimited(OrdersError):
    """Too many orders from the same table in the current window."""

    code = 'rate_limited'
    status_code = 429
