from .tenancy import Outlet, DocumentSequence
from .catalog import Product, PriceRule
from .customers import CustomerTier, Customer, TierPriceOverride
from .inventory import InventoryState, InventoryEvent
from .sales import Sale, SaleLine
from .capital import CapitalEntry

__all__ = [
    'Outlet', 'DocumentSequence',
    'Product', 'PriceRule',
    'CustomerTier', 'Customer', 'TierPriceOverride',
    'InventoryState', 'InventoryEvent',
    'Sale', 'SaleLine',
    'CapitalEntry',
]
