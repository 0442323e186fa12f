# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- MOBILE SERVICES --

MOBILE_SERVICE_PERMISSIONS = [
    (
        "VIEW_SERVICE_TRANSACTIONS",
        "View Service Transactions",
        "List load, mobile-wallet and bill-payment transactions",
        PermissionCategory.MOBILE_SERVICES,
    ),
    (
        "RECORD_SERVICE_TRANSACTION",
        "Record Service Transaction",
        "Record a load, mobile-wallet or bill-payment transaction",
        PermissionCategory.MOBILE_SERVICES,
    ),
    (
        "EDIT_SERVICE_TRANSACTION",
        "Edit Service Transaction",
        "Change amount, discount, commission or status of a transaction",
        PermissionCategory.MOBILE_SERVICES,
    ),
    (
        "DELETE_SERVICE_TRANSACTION",
        "Delete Service Transaction",
        "Permanently delete a service transaction",
        PermissionCategory.MOBILE_SERVICES,
    ),
]


# -- DAILY CLOSING --

CLOSING_PERMISSIONS = [
    (
        "VIEW_DAILY_CLOSING",
        "View Daily Closing",
        "View the day's computed aggregates and submitted closings",
        PermissionCategory.CLOSING,
    ),
    (
        "SUBMIT_DAILY_CLOSING",
        "Submit Daily Closing",
        "Create or resubmit the day's closing",
        PermissionCategory.CLOSING,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "VIEW_SALES",
        "View Sales",
        "List recorded sales",
        PermissionCategory.SALES,
    ),
    (
        "RECORD_SALE",
        "Record Sale",
        "Record a completed POS sale",
        PermissionCategory.SALES,
    ),
]


# -- PURCHASES --

PURCHASE_PERMISSIONS = [
    (
        "VIEW_PURCHASES",
        "View Purchases",
        "List supplier purchases and payments",
        PermissionCategory.PURCHASES,
    ),
    (
        "MANAGE_PURCHASES",
        "Manage Purchases",
        "Record purchases and pay suppliers",
        PermissionCategory.PURCHASES,
    ),
]


# -- LOANS --

LOAN_PERMISSIONS = [
    (
        "VIEW_LOANS",
        "View Loans",
        "View customer loans and installment schedules",
        PermissionCategory.LOANS,
    ),
    (
        "MANAGE_LOANS",
        "Manage Loans",
        "Create and delete customer loans",
        PermissionCategory.LOANS,
    ),
    (
        "RECORD_INSTALLMENT_PAYMENT",
        "Record Installment Payment",
        "Record a customer's installment payment",
        PermissionCategory.LOANS,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View dashboard rollups and export CSV",
        PermissionCategory.REPORTS,
    ),
]


# -- SETTINGS --

SETTINGS_PERMISSIONS = [
    (
        "VIEW_FEE_SETTINGS",
        "View Fee Settings",
        "View the shop's commission fee rules",
        PermissionCategory.SETTINGS,
    ),
    (
        "MANAGE_FEE_SETTINGS",
        "Manage Fee Settings",
        "Change the shop's commission fee rules",
        PermissionCategory.SETTINGS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "SYSTEM_ADMIN",
        "System Administration",
        "Act on any shop",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    MOBILE_SERVICE_PERMISSIONS
    + CLOSING_PERMISSIONS
    + SALES_PERMISSIONS
    + PURCHASE_PERMISSIONS
    + LOAN_PERMISSIONS
    + REPORT_PERMISSIONS
    + SETTINGS_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
