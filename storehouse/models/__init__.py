"""
Models package
"""
from storehouse.models.company import Company, Storehouse, Section, User, Role
from storehouse.models.catalog import Category, Supplier, Product
from storehouse.models.order import (
    Order,
    OrderItem,
    OrderStatusHistory,
    OrderAssignment,
    OrderStatus,
    TERMINAL_STATUSES
)

__all__ = [
    "Company",
    "Storehouse",
    "Section",
    "User",
    "Role",
    "Category",
    "Supplier",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "OrderAssignment",
    "OrderStatus",
    "TERMINAL_STATUSES"
]
