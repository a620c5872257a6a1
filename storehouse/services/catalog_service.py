"""
Catalog Services - categories, suppliers, storehouses and sections

All four are owned by the caller's company. Lookups outside the company
behave as if the row did not exist, and rows that products or sections
still point at cannot be deleted.
"""
from typing import List, Optional

import structlog
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storehouse.exceptions import ConflictError, NotFoundError, ValidationError
from storehouse.repositories.catalog_repository import (
    CategoryRepository,
    SectionRepository,
    StorehouseRepository,
    SupplierRepository,
)
from storehouse.schemas.catalog import (
    CategoryResponse,
    SectionCreate,
    SectionResponse,
    SectionUpdate,
    StorehouseResponse,
    SupplierResponse,
)
from storehouse.security import CallerContext

logger = structlog.get_logger(__name__)


def _require_company(caller: CallerContext) -> int:
    if caller.company_id is None:
        raise ValidationError("User is not associated with a company.")
    return caller.company_id


class _CompanyCatalogService:
    """Shared CRUD flow for company-owned catalog entities"""

    label = None
    repository_class = None
    response_model = None

    def __init__(self, db: Session):
        self.repository = self.repository_class(db)

    def _load(self, entity_id: int, caller: CallerContext):
        entity = self.repository.get_by_id(entity_id, company_id=caller.company_id)
        if not entity:
            raise NotFoundError(f"{self.label} with id={entity_id} not found")
        return entity

    def list_all(self, caller: CallerContext) -> List:
        return [self.response_model.model_validate(e) for e in self.repository.get_all(caller.company_id)]

    def get(self, entity_id: int, caller: CallerContext):
        return self.response_model.model_validate(self._load(entity_id, caller))

    def create(self, data: BaseModel, caller: CallerContext):
        company_id = _require_company(caller)
        entity = self.repository.create(company_id=company_id, **data.model_dump())
        logger.info("catalog_entity_created", entity=self.label, entity_id=entity.id, company_id=company_id)
        return self.response_model.model_validate(entity)

    def update(self, entity_id: int, data: BaseModel, caller: CallerContext):
        entity = self._load(entity_id, caller)
        try:
            entity = self.repository.update(entity, data.model_dump(exclude_unset=True))
        except IntegrityError:
            raise ValidationError(f"{self.label} {entity_id} update violates a required field.")
        return self.response_model.model_validate(entity)

    def delete(self, entity_id: int, caller: CallerContext):
        entity = self._load(entity_id, caller)
        if self.repository.is_referenced(entity_id):
            raise ConflictError(f"{self.label} {entity_id} is still in use and cannot be deleted.")
        try:
            self.repository.delete(entity)
        except IntegrityError:
            raise ConflictError(f"{self.label} {entity_id} is still in use and cannot be deleted.")
        logger.info("catalog_entity_deleted", entity=self.label, entity_id=entity_id)


class CategoryService(_CompanyCatalogService):
    label = "Category"
    repository_class = CategoryRepository
    response_model = CategoryResponse


class SupplierService(_CompanyCatalogService):
    label = "Supplier"
    repository_class = SupplierRepository
    response_model = SupplierResponse


class StorehouseService(_CompanyCatalogService):
    label = "Storehouse"
    repository_class = StorehouseRepository
    response_model = StorehouseResponse

    def __init__(self, db: Session):
        super().__init__(db)
        self.sections = SectionRepository(db)

    def get_sections(self, storehouse_id: int, caller: CallerContext) -> List[SectionResponse]:
        """Sections of one of the caller's storehouses"""
        self._load(storehouse_id, caller)
        return [SectionResponse.model_validate(s) for s in self.sections.get_by_storehouse(storehouse_id)]


class SectionService(_CompanyCatalogService):
    """Sections carry no company id; ownership comes from the storehouse"""

    label = "Section"
    repository_class = SectionRepository
    response_model = SectionResponse

    def __init__(self, db: Session):
        super().__init__(db)
        self.storehouses = StorehouseRepository(db)

    def _check_storehouse(self, storehouse_id: Optional[int], caller: CallerContext):
        if not self.storehouses.get_by_id(storehouse_id, company_id=caller.company_id):
            raise ValidationError(f"Storehouse with ID {storehouse_id} not found.")

    def create(self, data: SectionCreate, caller: CallerContext) -> SectionResponse:
        _require_company(caller)
        self._check_storehouse(data.storehouse_id, caller)
        section = self.repository.create(**data.model_dump())
        logger.info("catalog_entity_created", entity=self.label, entity_id=section.id, storehouse_id=section.storehouse_id)
        return SectionResponse.model_validate(section)

    def update(self, entity_id: int, data: SectionUpdate, caller: CallerContext) -> SectionResponse:
        section = self._load(entity_id, caller)
        fields = data.model_dump(exclude_unset=True)
        if "storehouse_id" in fields:
            self._check_storehouse(fields["storehouse_id"], caller)
        return SectionResponse.model_validate(self.repository.update(section, fields))
