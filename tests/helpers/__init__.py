"""测试辅助模块"""

from .cascade_models import (
    Base,
    Customer,
    Order,
    OrderItem,
    Payment,
    Ledger,
    LedgerEntry,
    Article,
    create_order,
    stamps,
)

__all__ = [
    "Base",
    "Customer",
    "Order",
    "OrderItem",
    "Payment",
    "Ledger",
    "LedgerEntry",
    "Article",
    "create_order",
    "stamps",
]
