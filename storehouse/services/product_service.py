"""
Product Service - catalog maintenance for the caller's company

Products belong to a company through section -> storehouse. Callers
only ever see or change products stored in their own company, and
references to suppliers, categories and sections must resolve inside
that company too.
"""
import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storehouse.exceptions import ConflictError, NotFoundError, ValidationError
from storehouse.models.catalog import Product
from storehouse.repositories.catalog_repository import (
    CategoryRepository,
    SectionRepository,
    SupplierRepository,
)
from storehouse.repositories.product_repository import ProductRepository
from storehouse.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    StockCheckResponse
)
from storehouse.security import CallerContext

logger = structlog.get_logger(__name__)


class ProductService:
    """Service layer for product CRUD"""

    def __init__(self, db: Session):
        self.repository = ProductRepository(db)
        self.categories = CategoryRepository(db)
        self.suppliers = SupplierRepository(db)
        self.sections = SectionRepository(db)

    def _load(self, product_id: int, caller: CallerContext) -> Product:
        product = self.repository.get_by_id(product_id, company_id=caller.company_id)
        if not product:
            raise NotFoundError(f"Product with id={product_id} not found")
        return product

    def _validate_references(self, fields: dict, caller: CallerContext):
        """Check supplier, category and section ids resolve in the caller's company"""
        company_id = caller.company_id

        if "section_id" in fields:
            if fields["section_id"] is None:
                if company_id is not None:
                    raise ValidationError("Product must be stored in a section.")
            elif not self.sections.get_by_id(fields["section_id"], company_id):
                raise ValidationError(f"Section with ID {fields['section_id']} not found.")

        if fields.get("supplier_id") is not None and not self.suppliers.get_by_id(fields["supplier_id"], company_id):
            raise ValidationError(f"Supplier with ID {fields['supplier_id']} not found.")

        if fields.get("category_id") is not None and not self.categories.get_by_id(fields["category_id"], company_id):
            raise ValidationError(f"Category with ID {fields['category_id']} not found.")

    def get_all_products(self, caller: CallerContext, skip: int = 0, limit: int = 100) -> ProductListResponse:
        """Get the company's products with pagination"""
        products = self.repository.get_all(company_id=caller.company_id, skip=skip, limit=limit)
        total = self.repository.count(company_id=caller.company_id)

        return ProductListResponse(
            products=[ProductResponse.model_validate(p) for p in products],
            total=total
        )

    def get_product(self, product_id: int, caller: CallerContext) -> ProductResponse:
        return ProductResponse.model_validate(self._load(product_id, caller))

    def create_product(self, product_data: ProductCreate, caller: CallerContext) -> ProductResponse:
        """
        Create new product

        Raises:
            ValidationError: Missing section, or a supplier, category or
                section outside the caller's company
        """
        fields = product_data.model_dump()
        self._validate_references(fields, caller)

        product = self.repository.create(fields)
        logger.info("product_created", product_id=product.id, company_id=caller.company_id)
        return ProductResponse.model_validate(product)

    def update_product(self, product_id: int, product_data: ProductUpdate, caller: CallerContext) -> ProductResponse:
        """Update only the provided fields; existing orders keep their price snapshot"""
        product = self._load(product_id, caller)
        fields = product_data.model_dump(exclude_unset=True)
        self._validate_references(fields, caller)

        try:
            product = self.repository.update(product, fields)
        except IntegrityError:
            raise ValidationError(f"Product {product_id} update violates a required field.")
        logger.info("product_updated", product_id=product_id, fields=sorted(fields))
        return ProductResponse.model_validate(product)

    def delete_product(self, product_id: int, caller: CallerContext):
        """
        Delete a product nobody has ordered yet

        Raises:
            NotFoundError: Product is not in the caller's company
            ConflictError: Order items still reference the product
        """
        product = self._load(product_id, caller)
        if self.repository.is_ordered(product_id):
            raise ConflictError(
                f"Product {product_id} is part of existing orders and cannot be deleted."
            )

        try:
            self.repository.delete(product)
        except IntegrityError:
            raise ConflictError(f"Product {product_id} is still referenced and cannot be deleted.")
        logger.info("product_deleted", product_id=product_id)

    def check_stock(self, product_id: int, caller: CallerContext, required_quantity: int = 1) -> StockCheckResponse:
        """Check whether the product can cover required_quantity"""
        product = self._load(product_id, caller)
        available = product.stock >= required_quantity

        return StockCheckResponse(
            product_id=product_id,
            available=available,
            stock=product.stock,
            message=None if available else (
                f"Insufficient stock. Available: {product.stock}, Required: {required_quantity}"
            )
        )
