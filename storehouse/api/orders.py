"""
Order API endpoints
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from storehouse.api.errors import to_http_exception
from storehouse.database import get_db
from storehouse.exceptions import StorehouseError
from storehouse.models.company import Role
from storehouse.models.order import OrderStatus
from storehouse.publishers.event_publisher import EventPublisher
from storehouse.security import CallerContext, get_caller_context, require_roles
from storehouse.services.order_service import OrderService
from storehouse.schemas.order import (
    OrderCreate,
    OrderStatusUpdate,
    AssignWorkersRequest,
    OrderResponse,
    OrderListResponse,
    AllowedStatusesResponse,
    SalesSummaryResponse
)

router = APIRouter(prefix="/orders", tags=["orders"])

require_manager = require_roles(Role.COMPANY_MANAGER, Role.STOREHOUSE_MANAGER)


def get_event_publisher() -> EventPublisher:
    """Dependency to get EventPublisher instance"""
    return EventPublisher()


def get_order_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher)
) -> OrderService:
    """Dependency to get OrderService instance; events go out after the response"""
    return OrderService(db, publisher, dispatch=background_tasks.add_task)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED, summary="Create order")
def create_order(
    order_data: OrderCreate,
    caller: CallerContext = Depends(get_caller_context),
    service: OrderService = Depends(get_order_service)
):
    """
    Create a new order
    
    Process:
    1. Validate items, shipping address and creating user
    2. Check every product exists with enough stock
    3. Snapshot unit prices and compute the total
    4. Save order and decrement stock in one transaction
    5. Publish OrderCreated event
    
    - **order_items**: [{product_id, quantity}] (required, at least one)
    - **shipping_address_street**: required
    - **user_id**: creator (optional, defaults to the caller)
    """
    try:
        return service.create_order(order_data, caller)
    except StorehouseError as e:
        raise to_http_exception(e)


@router.get("", response_model=OrderListResponse, summary="Get company orders")
def get_orders(
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="Filter by status"),
    skip: int = Query(0, ge=0, description="Number of orders to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of orders to return"),
    caller: CallerContext = Depends(get_caller_context),
    service: OrderService = Depends(get_order_service)
):
    """
    Retrieve orders of the caller's company, newest first
    
    - **status**: Optional status filter
    - **skip**: Number of orders to skip (default: 0)
    - **limit**: Maximum number of orders to return (default: 100, max: 1000)
    """
    return service.list_orders(caller, status=order_status, skip=skip, limit=limit)


@router.get("/assigned/me", response_model=List[OrderResponse], summary="Get orders assigned to me")
def get_my_assigned_orders(
    caller: CallerContext = Depends(get_caller_context),
    service: OrderService = Depends(get_order_service)
):
    """Retrieve orders the calling worker is assigned to"""
    return service.get_orders_assigned_to_worker(caller.user_id)


@router.get("/sales-summary", response_model=SalesSummaryResponse, summary="Sales summary")
def get_sales_summary(
    caller: CallerContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service)
):
    """Daily, monthly and yearly sales with trend against the previous period"""
    return service.get_sales_summary()


@router.get("/export/{export_format}", summary="Export orders")
def export_orders(
    export_format: str,
    caller: CallerContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service)
):
    """
    Export the company's orders, one row per order item
    
    - **export_format**: csv, excel or json
    """
    try:
        content, media_type, filename = service.export_orders(export_format, caller)
    except StorehouseError as e:
        raise to_http_exception(e)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.get("/{order_id}", response_model=OrderResponse, summary="Get order by ID")
def get_order(
    order_id: int,
    caller: CallerContext = Depends(get_caller_context),
    service: OrderService = Depends(get_order_service)
):
    """
    Retrieve a specific order with items, assignments and status history
    
    - **order_id**: Order ID
    """
    try:
        return service.get_order(order_id)
    except StorehouseError as e:
        raise to_http_exception(e)


@router.get("/{order_id}/export/{export_format}", summary="Export one order")
def export_order(
    order_id: int,
    export_format: str,
    caller: CallerContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service)
):
    """Export a single order as csv, excel or json"""
    try:
        content, media_type, filename = service.export_order(order_id, export_format)
    except StorehouseError as e:
        raise to_http_exception(e)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.get("/{order_id}/allowed-statuses", response_model=AllowedStatusesResponse, summary="Next statuses for caller")
def get_allowed_statuses(
    order_id: int,
    caller: CallerContext = Depends(get_caller_context),
    service: OrderService = Depends(get_order_service)
):
    """Statuses the caller's role may move this order to"""
    try:
        return service.get_allowed_statuses(order_id, caller)
    except StorehouseError as e:
        raise to_http_exception(e)


@router.put("/{order_id}/status", status_code=status.HTTP_204_NO_CONTENT, summary="Update order status")
def update_order_status(
    order_id: int,
    status_data: OrderStatusUpdate,
    caller: CallerContext = Depends(get_caller_context),
    service: OrderService = Depends(get_order_service)
):
    """
    Update order status
    
    The caller's role (from the token) decides which transitions are allowed.
    
    - **status**: Requested status
    - **description**: Optional note stored in the status history
    - **version**: Optional order version for optimistic concurrency
    """
    try:
        service.update_order_status(
            order_id,
            status_data.status,
            caller,
            description=status_data.description,
            expected_version=status_data.version
        )
    except StorehouseError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{order_id}/assign-workers", response_model=OrderResponse, summary="Assign workers to order")
def assign_workers(
    order_id: int,
    assignment: AssignWorkersRequest,
    caller: CallerContext = Depends(require_manager),
    service: OrderService = Depends(get_order_service)
):
    """
    Replace the workers assigned to an order
    
    Full replacement: an empty list un-assigns everyone.
    
    - **worker_ids**: Worker user IDs
    """
    try:
        return service.assign_workers(order_id, assignment.worker_ids)
    except StorehouseError as e:
        raise to_http_exception(e)
