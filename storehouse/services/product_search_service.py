"""
Product Search Service - catalog listing with filters, sort and paging
"""
import math
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from storehouse.config import settings
from storehouse.models.catalog import Product
from storehouse.repositories.product_repository import ProductRepository
from storehouse.schemas.product import (
    ProductSearchParameters,
    ProductSearchResult,
    PagedProductSearchResponse,
)

logger = structlog.get_logger(__name__)


def to_search_result(product: Product) -> ProductSearchResult:
    """Denormalize supplier, category, section and storehouse names"""
    section = product.section
    storehouse = section.storehouse if section else None
    return ProductSearchResult(
        product_id=product.id,
        name=product.name,
        stock=product.stock,
        price=product.price,
        expiry_date=product.expiry_date,
        photo=product.photo,
        supplier_id=product.supplier_id,
        supplier_name=product.supplier.name if product.supplier else None,
        category_id=product.category_id,
        category_name=product.category.name if product.category else None,
        section_id=product.section_id,
        section_name=section.name if section else None,
        storehouse_name=storehouse.name if storehouse else None,
        storehouse_location=storehouse.location if storehouse else None,
    )


class ProductSearchService:
    """Translates search parameters into a paged catalog query"""
    
    def __init__(self, db: Session, max_page_size: Optional[int] = None):
        self.repository = ProductRepository(db)
        self.max_page_size = max_page_size or settings.MAX_PAGE_SIZE
    
    def search(self, params: ProductSearchParameters) -> PagedProductSearchResponse:
        page_size = min(params.page_size, self.max_page_size)
        products, total = self.repository.search(params, page_size)
        
        logger.info(
            "product_search",
            total=total,
            returned=len(products),
            page_number=params.page_number,
            page_size=page_size,
            company_id=params.company_id
        )
        
        return PagedProductSearchResponse(
            items=[to_search_result(p) for p in products],
            total_count=total,
            page_number=params.page_number,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )
