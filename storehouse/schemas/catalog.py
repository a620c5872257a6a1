"""
Pydantic schemas for categories, suppliers, storehouses and sections
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional


class CategoryCreate(BaseModel):
    """Schema for creating a category in the caller's company"""
    name: str = Field(..., min_length=1, max_length=255)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class CategoryResponse(BaseModel):
    id: int
    name: str
    company_id: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class SupplierCreate(BaseModel):
    """Schema for creating a supplier in the caller's company"""
    name: str = Field(..., min_length=1, max_length=255)
    contact_info: Optional[str] = Field(None, max_length=255)


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_info: Optional[str] = Field(None, max_length=255)


class SupplierResponse(BaseModel):
    id: int
    name: str
    contact_info: Optional[str]
    company_id: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class StorehouseCreate(BaseModel):
    """Schema for creating a storehouse owned by the caller's company"""
    name: str = Field(..., min_length=1, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    size_m2: Optional[float] = Field(None, gt=0, description="Floor area in square meters")


class StorehouseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    size_m2: Optional[float] = Field(None, gt=0)


class StorehouseResponse(BaseModel):
    id: int
    name: str
    location: Optional[str]
    size_m2: Optional[float]
    company_id: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class SectionCreate(BaseModel):
    """Schema for creating a section inside one of the caller's storehouses"""
    name: str = Field(..., min_length=1, max_length=255)
    storehouse_id: int = Field(..., gt=0)


class SectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    storehouse_id: Optional[int] = Field(None, gt=0)


class SectionResponse(BaseModel):
    id: int
    name: str
    storehouse_id: Optional[int]

    model_config = ConfigDict(from_attributes=True)
