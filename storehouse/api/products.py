"""
Product API endpoints
"""
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import Optional, Literal

from storehouse.api.errors import to_http_exception
from storehouse.config import settings
from storehouse.database import get_db
from storehouse.exceptions import StorehouseError
from storehouse.models.company import Role
from storehouse.security import CallerContext, get_caller_context, require_roles
from storehouse.services.product_service import ProductService
from storehouse.services.product_search_service import ProductSearchService
from storehouse.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    StockCheckResponse,
    ProductSearchParameters,
    PagedProductSearchResponse
)

router = APIRouter(prefix="/products", tags=["products"])

require_manager = require_roles(Role.COMPANY_MANAGER, Role.STOREHOUSE_MANAGER)


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    """Dependency to get ProductService instance"""
    return ProductService(db)


def get_product_search_service(db: Session = Depends(get_db)) -> ProductSearchService:
    """Dependency to get ProductSearchService instance"""
    return ProductSearchService(db)


@router.get("/search", response_model=PagedProductSearchResponse, summary="Search products")
def search_products(
    term: Optional[str] = Query(None, description="Text matched against name and description"),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    min_stock: Optional[int] = Query(None, ge=0),
    min_expiry_date: Optional[datetime] = Query(None),
    max_expiry_date: Optional[datetime] = Query(None),
    supplier_name: Optional[str] = Query(None),
    category_name: Optional[str] = Query(None),
    section_name: Optional[str] = Query(None),
    storehouse_name: Optional[str] = Query(None),
    storehouse_location: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None, description="name, price, stock or expirydate"),
    sort_direction: Literal["ASC", "DESC", "asc", "desc"] = Query("ASC"),
    page_number: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    caller: CallerContext = Depends(get_caller_context),
    service: ProductSearchService = Depends(get_product_search_service)
):
    """
    Search the catalog of the caller's company
    
    Supplier, category, section and storehouse names are matched
    case-insensitively as substrings. Default sort: name ascending.
    """
    params = ProductSearchParameters(
        term=term,
        min_price=min_price,
        max_price=max_price,
        min_stock=min_stock,
        min_expiry_date=min_expiry_date,
        max_expiry_date=max_expiry_date,
        supplier_name=supplier_name,
        category_name=category_name,
        section_name=section_name,
        storehouse_name=storehouse_name,
        storehouse_location=storehouse_location,
        sort_by=sort_by,
        sort_direction=sort_direction,
        page_number=page_number,
        page_size=page_size,
        company_id=caller.company_id,
    )
    return service.search(params)


@router.get("", response_model=ProductListResponse, summary="Get company products")
def get_products(
    skip: int = Query(0, ge=0, description="Number of products to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of products to return"),
    caller: CallerContext = Depends(get_caller_context),
    service: ProductService = Depends(get_product_service)
):
    """
    Retrieve the products stored in the caller's company
    
    - **skip**: Number of products to skip (default: 0)
    - **limit**: Maximum number of products to return (default: 100, max: 1000)
    """
    return service.get_all_products(caller, skip=skip, limit=limit)


@router.get("/{product_id}", response_model=ProductResponse, summary="Get product by ID")
def get_product(
    product_id: int,
    caller: CallerContext = Depends(get_caller_context),
    service: ProductService = Depends(get_product_service)
):
    """
    Retrieve a specific product by ID
    
    - **product_id**: Product ID
    """
    try:
        return service.get_product(product_id, caller)
    except StorehouseError as e:
        raise to_http_exception(e)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED, summary="Create product")
def create_product(
    product_data: ProductCreate,
    caller: CallerContext = Depends(require_manager),
    service: ProductService = Depends(get_product_service)
):
    """
    Create a new product
    
    - **section_id**: required; must belong to one of the caller's storehouses
    - **supplier_id**, **category_id**: optional; must belong to the caller's company
    """
    try:
        return service.create_product(product_data, caller)
    except StorehouseError as e:
        raise to_http_exception(e)


@router.put("/{product_id}", response_model=ProductResponse, summary="Update product")
def update_product(
    product_id: int,
    product_data: ProductUpdate,
    caller: CallerContext = Depends(require_manager),
    service: ProductService = Depends(get_product_service)
):
    """
    Update an existing product
    
    All fields are optional. Only provided fields will be updated.
    Existing orders keep the unit price captured when they were placed.
    """
    try:
        return service.update_product(product_id, product_data, caller)
    except StorehouseError as e:
        raise to_http_exception(e)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete product")
def delete_product(
    product_id: int,
    caller: CallerContext = Depends(require_manager),
    service: ProductService = Depends(get_product_service)
):
    """Delete a product; products that appear on orders are kept (409)"""
    try:
        service.delete_product(product_id, caller)
    except StorehouseError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{product_id}/check", response_model=StockCheckResponse, summary="Check stock availability")
def check_stock(
    product_id: int,
    quantity: int = Query(1, ge=1, description="Required quantity"),
    caller: CallerContext = Depends(get_caller_context),
    service: ProductService = Depends(get_product_service)
):
    """
    Check if product has sufficient stock
    
    - **product_id**: Product ID
    - **quantity**: Required quantity (default: 1)
    """
    try:
        return service.check_stock(product_id, caller, quantity)
    except StorehouseError as e:
        raise to_http_exception(e)
