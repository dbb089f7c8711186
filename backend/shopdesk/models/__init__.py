from .auth import User, WorkerPermission, SessionToken, ROLE_ADMIN, ROLE_WORKER, ROLES
from .billing import Plan, Subscription, AdminFeatureOverride
from .sales import Sale, SaleItem
from .credits import Credit
from .payments import PaymentLedger
from .inventory import Product
from .expenses import Expense
from .settings import AppSettings
from .security import SecurityEvent

__all__ = [
    'User', 'WorkerPermission', 'SessionToken', 'ROLE_ADMIN', 'ROLE_WORKER', 'ROLES',
    'Plan', 'Subscription', 'AdminFeatureOverride',
    'Sale', 'SaleItem',
    'Credit',
    'PaymentLedger',
    'Product',
    'Expense',
    'AppSettings',
    'SecurityEvent',
]
