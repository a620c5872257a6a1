"""
Catalog Repositories - categories, suppliers, storehouses and sections

Every lookup takes the caller's company id; None means unscoped.
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from storehouse.database import commit_or_rollback
from storehouse.models.catalog import Category, Product, Supplier
from storehouse.models.company import Section, Storehouse, User


class _CompanyScopedRepository:
    """CRUD for a model that belongs to a company"""

    model = None

    def __init__(self, db: Session):
        self.db = db

    def _scoped(self, query, company_id: Optional[int]):
        if company_id is None:
            return query
        return query.filter(self.model.company_id == company_id)

    def get_all(self, company_id: Optional[int] = None) -> List:
        query = self._scoped(self.db.query(self.model), company_id)
        return query.order_by(self.model.name, self.model.id).all()

    def get_by_id(self, entity_id: int, company_id: Optional[int] = None):
        query = self._scoped(self.db.query(self.model), company_id)
        return query.filter(self.model.id == entity_id).first()

    def create(self, **fields):
        entity = self.model(**fields)
        self.db.add(entity)
        commit_or_rollback(self.db)
        self.db.refresh(entity)
        return entity

    def update(self, entity, fields: dict):
        for field, value in fields.items():
            setattr(entity, field, value)
        commit_or_rollback(self.db)
        self.db.refresh(entity)
        return entity

    def delete(self, entity):
        self.db.delete(entity)
        commit_or_rollback(self.db)

    def is_referenced(self, entity_id: int) -> bool:
        """Whether other rows still point at the entity"""
        raise NotImplementedError


class CategoryRepository(_CompanyScopedRepository):
    model = Category

    def is_referenced(self, entity_id: int) -> bool:
        return self.db.query(Product.id).filter(Product.category_id == entity_id).first() is not None


class SupplierRepository(_CompanyScopedRepository):
    model = Supplier

    def is_referenced(self, entity_id: int) -> bool:
        return self.db.query(Product.id).filter(Product.supplier_id == entity_id).first() is not None


class StorehouseRepository(_CompanyScopedRepository):
    model = Storehouse

    def is_referenced(self, entity_id: int) -> bool:
        has_sections = self.db.query(Section.id).filter(Section.storehouse_id == entity_id).first()
        has_staff = self.db.query(User.id).filter(User.storehouse_id == entity_id).first()
        return has_sections is not None or has_staff is not None


class SectionRepository(_CompanyScopedRepository):
    """Sections belong to a company through their storehouse"""

    model = Section

    def _scoped(self, query, company_id: Optional[int]):
        if company_id is None:
            return query
        return query.join(Section.storehouse).filter(Storehouse.company_id == company_id)

    def get_by_storehouse(self, storehouse_id: int) -> List[Section]:
        return self.db.query(Section).filter(
            Section.storehouse_id == storehouse_id
        ).order_by(Section.name, Section.id).all()

    def is_referenced(self, entity_id: int) -> bool:
        return self.db.query(Product.id).filter(Product.section_id == entity_id).first() is not None
