from .products import Product, DiscountRule, DEFAULT_CATEGORY
from .sales import Sale, SaleItem

__all__ = [
    'Product', 'DiscountRule', 'DEFAULT_CATEGORY',
    'Sale', 'SaleItem',
]
