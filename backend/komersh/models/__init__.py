from .auth import User, Invitation, AuthSession
from .catalog import PotentialProduct, PRODUCT_STATUSES
from .inventory import InventoryItem, SalesOrder, INVENTORY_STATUSES, PAYOUT_STATUSES, LOW_STOCK_THRESHOLD
from .finance import BankAccount, Expense, ACCOUNT_TYPES, ADJUSTMENT_TYPES
from .tasks import Task, TASK_STATUSES, TASK_PRIORITIES
from .files import Attachment
from .activity import ActivityLog, Notification, NOTIFICATION_TYPES

__all__ = [
    'User', 'Invitation', 'AuthSession',
    'PotentialProduct', 'PRODUCT_STATUSES',
    'InventoryItem', 'SalesOrder', 'INVENTORY_STATUSES', 'PAYOUT_STATUSES', 'LOW_STOCK_THRESHOLD',
    'BankAccount', 'Expense', 'ACCOUNT_TYPES', 'ADJUSTMENT_TYPES',
    'Task', 'TASK_STATUSES', 'TASK_PRIORITIES',
    'Attachment',
    'ActivityLog', 'Notification', 'NOTIFICATION_TYPES',
]
