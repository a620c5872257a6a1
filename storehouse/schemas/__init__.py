"""
Schemas package
"""
from storehouse.schemas.order import (
    OrderItemCreate,
    OrderCreate,
    OrderStatusUpdate,
    AssignWorkersRequest,
    OrderResponse,
    OrderListResponse,
    AllowedStatusesResponse,
    SalesSummaryResponse,
    OrderExportRow,
    OrderEvent
)
from storehouse.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    StockCheckResponse,
    ProductSearchParameters,
    ProductSearchResult,
    PagedProductSearchResponse
)
from storehouse.schemas.catalog import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    SupplierCreate,
    SupplierUpdate,
    SupplierResponse,
    StorehouseCreate,
    StorehouseUpdate,
    StorehouseResponse,
    SectionCreate,
    SectionUpdate,
    SectionResponse
)

__all__ = [
    "OrderItemCreate",
    "OrderCreate",
    "OrderStatusUpdate",
    "AssignWorkersRequest",
    "OrderResponse",
    "OrderListResponse",
    "AllowedStatusesResponse",
    "SalesSummaryResponse",
    "OrderExportRow",
    "OrderEvent",
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",
    "ProductListResponse",
    "StockCheckResponse",
    "ProductSearchParameters",
    "ProductSearchResult",
    "PagedProductSearchResponse",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "SupplierCreate",
    "SupplierUpdate",
    "SupplierResponse",
    "StorehouseCreate",
    "StorehouseUpdate",
    "StorehouseResponse",
    "SectionCreate",
    "SectionUpdate",
    "SectionResponse"
]
