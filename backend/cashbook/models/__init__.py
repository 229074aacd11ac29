from .records import (
    TransactionType, DebtType, DebtStatus, BillFrequency,
    ProductVariant, Product, TransactionItem, Transaction, DebtEntry, Bill,
)
from .storage import StoredCollection

__all__ = [
    'TransactionType', 'DebtType', 'DebtStatus', 'BillFrequency',
    'ProductVariant', 'Product', 'TransactionItem', 'Transaction', 'DebtEntry', 'Bill',
    'StoredCollection',
]
