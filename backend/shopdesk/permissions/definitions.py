# Overview: Display metadata for features and the default plan grant.
# Each feature is defined as: (feature, label, description)

from .features import Feature, FeaturePermission


FEATURE_DEFINITIONS = [
    (Feature.INVOICE, "Invoices", "Create and print customer invoices"),
    (Feature.INVENTORY, "Inventory", "Manage products, stock and categories"),
    (Feature.SALES, "Sales History", "Browse, edit and remove completed sales"),
    (Feature.CREDITS, "Credits", "Track balances customers still owe"),
    (Feature.CUSTOMERS, "Customers", "Customer directory and history"),
    (Feature.EXPENSES, "Expenses", "Record shop running costs"),
    (Feature.RECEIVE_PAYMENT, "Receive Payments", "Collect payments against open credit"),
    (Feature.CASH_CREDIT, "Cash Credits", "Lend cash to customers (udhar diya)"),
    (Feature.WORKERS, "Manage Workers", "Create workers and set their permissions"),
]


# A freshly created plan grants everything until the super admin narrows it
DEFAULT_PLAN_FEATURES = {feature: FeaturePermission.full() for feature in Feature}
