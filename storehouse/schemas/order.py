"""
Pydantic schemas for order request/response validation
"""
from pydantic import BaseModel, Field, ConfigDict, AliasChoices
from typing import Optional, List, Literal
from datetime import datetime

from storehouse.models.order import OrderStatus


class OrderItemCreate(BaseModel):
    """Requested order line"""
    product_id: int = Field(
        ...,
        gt=0,
        validation_alias=AliasChoices("product_id", "productId"),
        description="Product ID"
    )
    quantity: int = Field(..., ge=1, description="Quantity to order")


class OrderCreate(BaseModel):
    """Schema for creating a new order"""
    user_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("user_id", "userId"),
        description="Creator user ID (defaults to the caller)"
    )
    order_items: List[OrderItemCreate] = Field(
        default_factory=list,
        validation_alias=AliasChoices("order_items", "orderItems")
    )
    client_name: Optional[str] = Field(
        None, max_length=200, validation_alias=AliasChoices("client_name", "clientName")
    )
    client_phone_number: Optional[str] = Field(
        None, max_length=30, validation_alias=AliasChoices("client_phone_number", "clientPhoneNumber")
    )
    shipping_address_street: Optional[str] = Field(
        None, max_length=255, validation_alias=AliasChoices("shipping_address_street", "shippingAddressStreet")
    )
    shipping_address_city: Optional[str] = Field(
        None, max_length=100, validation_alias=AliasChoices("shipping_address_city", "shippingAddressCity")
    )
    shipping_address_postal_code: Optional[str] = Field(
        None, max_length=20, validation_alias=AliasChoices("shipping_address_postal_code", "shippingAddressPostalCode")
    )
    shipping_address_country: Optional[str] = Field(
        None, max_length=100, validation_alias=AliasChoices("shipping_address_country", "shippingAddressCountry")
    )


class OrderStatusUpdate(BaseModel):
    """Schema for updating order status"""
    status: OrderStatus = Field(..., description="Requested status")
    description: Optional[str] = Field(None, max_length=1000)
    version: Optional[int] = Field(
        None,
        ge=1,
        description="Order version the caller last saw; mismatch is rejected with 409"
    )


class AssignWorkersRequest(BaseModel):
    """Schema for replacing the workers assigned to an order"""
    worker_ids: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("worker_ids", "workerIds")
    )


class OrderItemResponse(BaseModel):
    """Schema for order item response"""
    id: int
    product_id: int
    product_name: Optional[str]
    quantity: int
    unit_price: float
    total_price: float
    
    model_config = ConfigDict(from_attributes=True)


class OrderStatusHistoryResponse(BaseModel):
    """Schema for status history entry"""
    id: int
    status: OrderStatus
    updated_by_user_id: Optional[str]
    description: Optional[str]
    timestamp: datetime
    
    model_config = ConfigDict(from_attributes=True)


class OrderAssignmentResponse(BaseModel):
    """Schema for worker assignment"""
    worker_id: str
    assigned_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order response"""
    id: int
    status: OrderStatus
    created_at: datetime
    total_price: float
    user_id: Optional[str]
    company_id: Optional[int]
    client_name: Optional[str]
    client_phone_number: Optional[str]
    shipping_address_street: Optional[str]
    shipping_address_city: Optional[str]
    shipping_address_postal_code: Optional[str]
    shipping_address_country: Optional[str]
    version: int
    items: List[OrderItemResponse] = []
    status_history: List[OrderStatusHistoryResponse] = []
    assignments: List[OrderAssignmentResponse] = []
    
    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """Schema for list of orders response"""
    orders: list[OrderResponse]
    total: int


class AllowedStatusesResponse(BaseModel):
    """Statuses the caller may move an order to"""
    order_id: int
    current_status: OrderStatus
    allowed_statuses: List[OrderStatus]


class SalesPeriodSummary(BaseModel):
    """Sales for one period compared with the previous one"""
    amount: float
    trend: Literal["up", "down", "neutral"]
    percentage_change: float
    progress_bar_percentage: float


class SalesSummaryResponse(BaseModel):
    """Daily, monthly and yearly sales"""
    daily_sales: SalesPeriodSummary
    monthly_sales: SalesPeriodSummary
    yearly_sales: SalesPeriodSummary


class OrderExportRow(BaseModel):
    """One flattened export row per order item"""
    order_id: int
    order_status: str
    order_created: datetime
    order_total_price: float
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    client_name: Optional[str] = None
    client_phone_number: Optional[str] = None
    shipping_address_street: Optional[str] = None
    shipping_address_city: Optional[str] = None
    shipping_address_postal_code: Optional[str] = None
    shipping_address_country: Optional[str] = None
    order_item_id: Optional[int] = None
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    item_quantity: Optional[int] = None
    item_price: Optional[float] = None
    item_total: Optional[float] = None


class OrderEvent(BaseModel):
    """Envelope for events published to RabbitMQ"""
    event_type: str
    event_id: str
    event_version: str = "1.0"
    timestamp: str
    source: str
    data: dict
