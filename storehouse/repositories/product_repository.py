"""
Product Repository - Data Access Layer
"""
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session, aliased, contains_eager
from sqlalchemy import or_, asc, desc

from storehouse.database import commit_or_rollback
from storehouse.models.catalog import Product, Category, Supplier
from storehouse.models.company import Section, Storehouse
from storehouse.models.order import OrderItem
from storehouse.schemas.product import ProductSearchParameters


# sort_by value -> column; anything else sorts by name
SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "stock": Product.stock,
    "expirydate": Product.expiry_date,
}


def _contains(column, value: str):
    """Case-insensitive substring match"""
    return column.ilike(f"%{value.strip()}%")


class ProductRepository:
    """Repository for Product CRUD operations and catalog search"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def _scoped(self, query, company_id: Optional[int]):
        """Restrict to products stored in one of the company's storehouses"""
        if company_id is None:
            return query
        return query.join(Product.section).join(Section.storehouse).filter(
            Storehouse.company_id == company_id
        )
    
    def get_all(self, company_id: Optional[int] = None, skip: int = 0, limit: int = 100) -> List[Product]:
        """Get products with pagination"""
        query = self._scoped(self.db.query(Product), company_id)
        return query.order_by(Product.id).offset(skip).limit(limit).all()
    
    def count(self, company_id: Optional[int] = None) -> int:
        """Get total count of products"""
        return self._scoped(self.db.query(Product), company_id).count()
    
    def get_by_id(self, product_id: int, company_id: Optional[int] = None) -> Optional[Product]:
        """Get product by ID"""
        query = self._scoped(self.db.query(Product), company_id)
        return query.filter(Product.id == product_id).first()
    
    def get_by_ids(self, product_ids: Iterable[int], company_id: Optional[int] = None) -> Dict[int, Product]:
        """Map product ID to product for the given IDs"""
        ids = list(product_ids)
        if not ids:
            return {}
        query = self._scoped(self.db.query(Product), company_id)
        products = query.filter(Product.id.in_(ids)).all()
        return {product.id: product for product in products}
    
    def create(self, fields: dict) -> Product:
        """Create new product"""
        product = Product(**fields)
        self.db.add(product)
        commit_or_rollback(self.db)
        self.db.refresh(product)
        return product
    
    def update(self, product: Product, fields: dict) -> Product:
        """Apply the provided fields to an existing product"""
        for field, value in fields.items():
            setattr(product, field, value)
        commit_or_rollback(self.db)
        self.db.refresh(product)
        return product
    
    def delete(self, product: Product):
        """Delete product"""
        self.db.delete(product)
        commit_or_rollback(self.db)
    
    def is_ordered(self, product_id: int) -> bool:
        """Whether any order item references the product"""
        return self.db.query(OrderItem.id).filter(OrderItem.product_id == product_id).first() is not None
    
    def search(self, params: ProductSearchParameters, page_size: int) -> Tuple[List[Product], int]:
        """
        Filtered, sorted, offset-paginated catalog query
        
        Related supplier, category, section and storehouse rows are
        loaded with the products so callers can denormalize names.
        
        Returns:
            (products on the requested page, total matching count)
        """
        supplier = aliased(Supplier)
        category = aliased(Category)
        section = aliased(Section)
        storehouse = aliased(Storehouse)
        
        query = (
            self.db.query(Product)
            .outerjoin(Product.supplier.of_type(supplier))
            .outerjoin(Product.category.of_type(category))
            .outerjoin(Product.section.of_type(section))
            .outerjoin(section.storehouse.of_type(storehouse))
        )
        
        filters = []
        if params.company_id is not None:
            filters.append(storehouse.company_id == params.company_id)
        if params.supplier_name:
            filters.append(_contains(supplier.name, params.supplier_name))
        if params.category_name:
            filters.append(_contains(category.name, params.category_name))
        if params.section_name:
            filters.append(_contains(section.name, params.section_name))
        if params.storehouse_name:
            filters.append(_contains(storehouse.name, params.storehouse_name))
        if params.storehouse_location:
            filters.append(_contains(storehouse.location, params.storehouse_location))
        if params.term:
            filters.append(or_(
                _contains(Product.name, params.term),
                _contains(Product.description, params.term),
            ))
        if params.min_price is not None:
            filters.append(Product.price >= params.min_price)
        if params.max_price is not None:
            filters.append(Product.price <= params.max_price)
        if params.min_stock is not None:
            filters.append(Product.stock >= params.min_stock)
        if params.min_expiry_date is not None:
            filters.append(Product.expiry_date >= params.min_expiry_date)
        if params.max_expiry_date is not None:
            filters.append(Product.expiry_date <= params.max_expiry_date)
        
        if filters:
            query = query.filter(*filters)
        
        total = query.count()
        if total == 0:
            return [], 0
        
        sort_key = (params.sort_by or "name").strip().lower()
        sort_column = SORT_COLUMNS.get(sort_key, Product.name)
        direction = desc if params.sort_direction.upper() == "DESC" else asc
        
        products = (
            query.options(
                contains_eager(Product.supplier.of_type(supplier)),
                contains_eager(Product.category.of_type(category)),
                contains_eager(Product.section.of_type(section))
                .contains_eager(section.storehouse.of_type(storehouse)),
            )
            .order_by(direction(sort_column), Product.id)
            .offset((params.page_number - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return products, total
