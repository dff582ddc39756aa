from .tenancy import Shop, UserShop
from .auth import User
from .inventory import Item, InventoryRecord, DEFAULT_REFILL_COUNT
from .communications import Notification
from .security import SecurityEvent

__all__ = [
    'Shop', 'UserShop',
    'User',
    'Item', 'InventoryRecord', 'DEFAULT_REFILL_COUNT',
    'Notification',
    'SecurityEvent',
]
