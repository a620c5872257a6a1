"""
Catalog API endpoints - categories, suppliers, storehouses and sections

Each resource gets the same list/get/create/update/delete routes scoped
to the caller's company. Any authenticated caller may read; writes are
limited to the given roles.
"""
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from storehouse.api.errors import to_http_exception
from storehouse.database import get_db
from storehouse.exceptions import StorehouseError
from storehouse.models.company import Role
from storehouse.security import CallerContext, get_caller_context, require_roles
from storehouse.services.catalog_service import (
    CategoryService,
    SectionService,
    StorehouseService,
    SupplierService,
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
    SectionResponse,
)


def _crud_router(prefix, service_class, create_model, update_model, response_model, writer_roles):
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])
    can_write = require_roles(*writer_roles)
    label = service_class.label.lower()

    def get_service(db: Session = Depends(get_db)):
        return service_class(db)

    @router.get("", response_model=List[response_model], summary=f"List {label} entries")
    def list_entities(
        caller: CallerContext = Depends(get_caller_context),
        service=Depends(get_service)
    ):
        return service.list_all(caller)

    @router.get("/{entity_id}", response_model=response_model, summary=f"Get {label} by ID")
    def get_entity(
        entity_id: int,
        caller: CallerContext = Depends(get_caller_context),
        service=Depends(get_service)
    ):
        try:
            return service.get(entity_id, caller)
        except StorehouseError as e:
            raise to_http_exception(e)

    @router.post("", response_model=response_model, status_code=status.HTTP_201_CREATED, summary=f"Create {label}")
    def create_entity(
        data: create_model,
        caller: CallerContext = Depends(can_write),
        service=Depends(get_service)
    ):
        try:
            return service.create(data, caller)
        except StorehouseError as e:
            raise to_http_exception(e)

    @router.put("/{entity_id}", response_model=response_model, summary=f"Update {label}")
    def update_entity(
        entity_id: int,
        data: update_model,
        caller: CallerContext = Depends(can_write),
        service=Depends(get_service)
    ):
        try:
            return service.update(entity_id, data, caller)
        except StorehouseError as e:
            raise to_http_exception(e)

    @router.delete("/{entity_id}", status_code=status.HTTP_204_NO_CONTENT, summary=f"Delete {label}")
    def delete_entity(
        entity_id: int,
        caller: CallerContext = Depends(can_write),
        service=Depends(get_service)
    ):
        try:
            service.delete(entity_id, caller)
        except StorehouseError as e:
            raise to_http_exception(e)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router, get_service


MANAGERS = (Role.COMPANY_MANAGER, Role.STOREHOUSE_MANAGER)

categories_router, get_category_service = _crud_router(
    "/categories", CategoryService, CategoryCreate, CategoryUpdate, CategoryResponse, MANAGERS
)
suppliers_router, get_supplier_service = _crud_router(
    "/suppliers", SupplierService, SupplierCreate, SupplierUpdate, SupplierResponse, MANAGERS
)
sections_router, get_section_service = _crud_router(
    "/sections", SectionService, SectionCreate, SectionUpdate, SectionResponse, MANAGERS
)
# Only company managers open or close storehouses
storehouses_router, get_storehouse_service = _crud_router(
    "/storehouses", StorehouseService, StorehouseCreate, StorehouseUpdate, StorehouseResponse,
    (Role.COMPANY_MANAGER,)
)


@storehouses_router.get("/{entity_id}/sections", response_model=List[SectionResponse], summary="Sections of a storehouse")
def get_storehouse_sections(
    entity_id: int,
    caller: CallerContext = Depends(get_caller_context),
    service: StorehouseService = Depends(get_storehouse_service)
):
    """Sections inside one of the caller's storehouses"""
    try:
        return service.get_sections(entity_id, caller)
    except StorehouseError as e:
        raise to_http_exception(e)
