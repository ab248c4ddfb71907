from .inventory import Product
from .currency import CurrencyRate
from .sales import LineItemMixin, Transaction, TransactionLine
from .credits import Credit, CreditLine

__all__ = [
    'Product',
    'CurrencyRate',
    'LineItemMixin', 'Transaction', 'TransactionLine',
    'Credit', 'CreditLine',
]
