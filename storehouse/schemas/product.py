"""
Pydantic schemas for product request/response validation
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Literal
from datetime import datetime


class ProductBase(BaseModel):
    """Base Product schema with common fields"""
    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: float = Field(..., ge=0, description="Unit price")
    stock: int = Field(..., ge=0, description="Stock quantity (must be non-negative)")
    expiry_date: Optional[datetime] = Field(None, description="Expiry date")
    photo: Optional[str] = Field(None, max_length=500, description="Photo URL")
    supplier_id: Optional[int] = None
    category_id: Optional[int] = None
    section_id: Optional[int] = None


class ProductCreate(ProductBase):
    """Schema for creating a new product"""
    pass


class ProductUpdate(BaseModel):
    """Schema for updating a product (all fields optional)"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    expiry_date: Optional[datetime] = None
    photo: Optional[str] = Field(None, max_length=500)
    supplier_id: Optional[int] = None
    category_id: Optional[int] = None
    section_id: Optional[int] = None


class ProductResponse(ProductBase):
    """Schema for product response"""
    id: int
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class ProductListResponse(BaseModel):
    """Schema for list of products response"""
    products: list[ProductResponse]
    total: int


class StockCheckResponse(BaseModel):
    """Schema for stock availability check"""
    product_id: int
    available: bool
    stock: int
    message: Optional[str] = None


class ProductSearchParameters(BaseModel):
    """Filters, sort and page for a catalog search"""
    term: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_stock: Optional[int] = None
    min_expiry_date: Optional[datetime] = None
    max_expiry_date: Optional[datetime] = None
    supplier_name: Optional[str] = None
    category_name: Optional[str] = None
    section_name: Optional[str] = None
    storehouse_name: Optional[str] = None
    storehouse_location: Optional[str] = None
    sort_by: Optional[str] = None
    sort_direction: Literal["ASC", "DESC", "asc", "desc"] = "ASC"
    page_number: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1)
    company_id: Optional[int] = None


class ProductSearchResult(BaseModel):
    """Product row with related names denormalized"""
    product_id: int
    name: str
    stock: int
    price: float
    expiry_date: Optional[datetime] = None
    photo: Optional[str] = None
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    section_id: Optional[int] = None
    section_name: Optional[str] = None
    storehouse_name: Optional[str] = None
    storehouse_location: Optional[str] = None


class PagedProductSearchResponse(BaseModel):
    """One page of search results"""
    items: List[ProductSearchResult]
    total_count: int
    page_number: int
    page_size: int
    total_pages: int
