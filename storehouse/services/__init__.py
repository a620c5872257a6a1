"""
Services package
"""
from storehouse.services.order_service import OrderService
from storehouse.services.product_service import ProductService
from storehouse.services.product_search_service import ProductSearchService
from storehouse.services.notification_service import NotificationService
from storehouse.services.catalog_service import (
    CategoryService,
    SupplierService,
    StorehouseService,
    SectionService
)

__all__ = [
    "OrderService",
    "ProductService",
    "ProductSearchService",
    "NotificationService",
    "CategoryService",
    "SupplierService",
    "StorehouseService",
    "SectionService"
]
