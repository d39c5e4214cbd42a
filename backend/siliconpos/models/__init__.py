from .catalog import Product, Service, ProductCategory
from .sales import Sale, SaleItem, SaleStatus
from .auth import User, SessionToken
from .documents import DocumentSequence
from .communications import Notification
from .settings import UserSetting, THEMES

__all__ = [
    'Product', 'Service', 'ProductCategory',
    'Sale', 'SaleItem', 'SaleStatus',
    'User', 'SessionToken',
    'DocumentSequence',
    'Notification',
    'UserSetting', 'THEMES',
]
