# Overview: Static role -> permission grants.

from .definitions import PERMISSION_DEFINITIONS


_ALL = [perm[0] for perm in PERMISSION_DEFINITIONS]

DEFAULT_ROLE_PERMISSIONS = {
    "SUPER_ADMIN": _ALL,
    "SHOP_OWNER": [code for code in _ALL if code != "SYSTEM_ADMIN"],
    # Workers run the counter: they record, and may view the closing, but never
    # submit it, delete transactions, touch fees, purchases or loan terms.
    "SHOP_WORKER": [
        "VIEW_SERVICE_TRANSACTIONS",
        "RECORD_SERVICE_TRANSACTION",
        "EDIT_SERVICE_TRANSACTION",
        "VIEW_DAILY_CLOSING",
        "VIEW_SALES",
        "RECORD_SALE",
        "VIEW_LOANS",
        "RECORD_INSTALLMENT_PAYMENT",
        "VIEW_FEE_SETTINGS",
    ],
}
