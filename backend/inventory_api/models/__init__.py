from .auth import Account, OneTimeCode, OtpPurpose, Role
from .inventory import Product, StockChangeEvent, STATUS_IN_STOCK, STATUS_OUT_OF_STOCK, status_for_stock

__all__ = [
    'Account', 'OneTimeCode', 'OtpPurpose', 'Role',
    'Product', 'StockChangeEvent',
    'STATUS_IN_STOCK', 'STATUS_OUT_OF_STOCK', 'status_for_stock',
]
