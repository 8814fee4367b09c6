from .enums import UserRole, OrderStatus, PaymentStatus, Gender, SubscriptionStatus, INVITABLE_ROLES
from .tenancy import Store, StoreInvitation
from .auth import User, SessionToken
from .catalog import Category, Product
from .customers import Customer
from .orders import Order, OrderItem
from .invoices import Invoice, derive_payment_status

__all__ = [
    'UserRole', 'OrderStatus', 'PaymentStatus', 'Gender', 'SubscriptionStatus', 'INVITABLE_ROLES',
    'Store', 'StoreInvitation',
    'User', 'SessionToken',
    'Category', 'Product',
    'Customer',
    'Order', 'OrderItem',
    'Invoice', 'derive_payment_status',
]
