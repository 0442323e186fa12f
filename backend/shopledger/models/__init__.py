from .tenancy import Shop
from .auth import User, SessionToken
from .security import SecurityEvent
from .audit import AuditEvent
from .fees import FeeRule, FeeSlab
from .mobile_services import ServiceTransaction
from .sales import Sale
from .purchases import Supplier, Purchase, PurchasePayment
from .customers import Customer
from .loans import Loan, LoanInstallment
from .closings import DailyClosing

__all__ = [
    'Shop',
    'User', 'SessionToken', 'SecurityEvent', 'AuditEvent',
    'FeeRule', 'FeeSlab',
    'ServiceTransaction',
    'Sale',
    'Supplier', 'Purchase', 'PurchasePayment',
    'Customer',
    'Loan', 'LoanInstallment',
    'DailyClosing',
]
