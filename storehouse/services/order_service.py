"""
Order Service - Business Logic Layer

Orchestrates order creation, status transitions and worker assignment.
Every operation validates before mutating and persists in one commit;
notifications are published afterwards and never fail the operation.
"""
from collections import Counter
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union

import structlog
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from storehouse.database import utcnow
from storehouse.exceptions import ValidationError, NotFoundError, ForbiddenError, ConflictError
from storehouse.metrics import (
    storehouse_orders_created_total,
    storehouse_order_status_transitions_total,
    storehouse_order_status_denied_total,
)
from storehouse.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory
from storehouse.publishers.event_publisher import EventPublisher
from storehouse.repositories.order_repository import OrderRepository
from storehouse.repositories.product_repository import ProductRepository
from storehouse.repositories.user_repository import UserRepository
from storehouse.schemas.order import (
    OrderCreate,
    OrderResponse,
    OrderListResponse,
    AllowedStatusesResponse,
    SalesSummaryResponse,
)
from storehouse.security import CallerContext
from storehouse.services import order_export, sales_summary
from storehouse.services.order_status_policy import allowed_transitions, can_transition

logger = structlog.get_logger(__name__)

INITIAL_STATUS_DESCRIPTION = "Order Created"


def _run_now(func, *args):
    func(*args)


class OrderService:
    """Service layer for the order workflow"""

    def __init__(
        self,
        db: Session,
        event_publisher: Optional[EventPublisher] = None,
        dispatch: Optional[Callable] = None
    ):
        self.repository = OrderRepository(db)
        self.product_repository = ProductRepository(db)
        self.user_repository = UserRepository(db)
        self.event_publisher = event_publisher or EventPublisher()
        self.dispatch = dispatch or _run_now

    def _load(self, order_id: int) -> Order:
        order = self.repository.get_by_id(order_id)
        if not order:
            raise NotFoundError(f"Order with id={order_id} not found")
        return order

    def get_order(self, order_id: int) -> OrderResponse:
        """Get order with items, assignments and status history"""
        return OrderResponse.model_validate(self._load(order_id))

    def list_orders(
        self,
        caller: CallerContext,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> OrderListResponse:
        """List orders of the caller's company, newest first"""
        status_value = status.value if status else None
        orders = self.repository.get_all(
            company_id=caller.company_id, status=status_value, skip=skip, limit=limit
        )
        total = self.repository.count(company_id=caller.company_id, status=status_value)

        return OrderListResponse(
            orders=[OrderResponse.model_validate(o) for o in orders],
            total=total
        )

    def get_orders_assigned_to_worker(self, worker_id: str) -> List[OrderResponse]:
        """Get orders the worker is assigned to"""
        orders = self.repository.get_by_worker(worker_id)
        return [OrderResponse.model_validate(o) for o in orders]

    def create_order(self, order_data: OrderCreate, caller: CallerContext) -> OrderResponse:
        """
        Create new order

        Steps:
        1. Validate items and shipping address
        2. Resolve the creating user
        3. Check every product exists and has enough stock
        4. Snapshot unit prices and compute the total
        5. Save order, items, initial history and stock decrements in one commit
        6. Publish OrderCreated event

        Raises:
            ValidationError: Empty items, bad quantity, unknown product or insufficient stock
            NotFoundError: Creating user does not exist
        """
        if not order_data.order_items:
            raise ValidationError("Order must have at least one item.")
        if not (order_data.shipping_address_street or "").strip():
            raise ValidationError("Shipping address street is required.")

        user_id = order_data.user_id or caller.user_id
        if not self.user_repository.get_by_id(user_id):
            raise NotFoundError(f"User with id={user_id} not found")

        requested = Counter()
        for item in order_data.order_items:
            if item.quantity < 1:
                raise ValidationError(
                    f"Quantity must be at least 1 (product {item.product_id})."
                )
            requested[item.product_id] += item.quantity

        products = self.product_repository.get_by_ids(requested, company_id=caller.company_id)
        for product_id, quantity in requested.items():
            product = products.get(product_id)
            if product is None:
                raise ValidationError(f"Product with ID {product_id} not found.")
            if product.stock < quantity:
                raise ValidationError(
                    f"Insufficient stock for Product ID {product_id}. "
                    f"Available: {product.stock}, Requested: {quantity}"
                )

        now = utcnow()
        order = Order(
            status=OrderStatus.CREATED.value,
            created_at=now,
            user_id=user_id,
            company_id=caller.company_id,
            client_name=order_data.client_name,
            client_phone_number=order_data.client_phone_number,
            shipping_address_street=order_data.shipping_address_street,
            shipping_address_city=order_data.shipping_address_city,
            shipping_address_postal_code=order_data.shipping_address_postal_code,
            shipping_address_country=order_data.shipping_address_country,
        )

        total_price = 0.0
        for item in order_data.order_items:
            product = products[item.product_id]
            order.items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                quantity=item.quantity,
                unit_price=product.price,
            ))
            total_price += item.quantity * product.price
        order.total_price = total_price

        order.status_history.append(OrderStatusHistory(
            updated_by_user_id=user_id,
            status=OrderStatus.CREATED.value,
            description=INITIAL_STATUS_DESCRIPTION,
            timestamp=now,
        ))

        for product_id, quantity in requested.items():
            products[product_id].stock -= quantity

        order = self.repository.add(order)
        storehouse_orders_created_total.inc()
        logger.info(
            "order_created",
            order_id=order.id,
            user_id=user_id,
            company_id=order.company_id,
            items=len(order.items),
            total_price=order.total_price
        )

        self._notify(
            self.event_publisher.publish_order_created,
            {
                'order_id': order.id,
                'company_id': order.company_id,
                'client_name': order.client_name,
                'created_by_user_id': user_id,
                'total_price': order.total_price,
                'status': order.status,
                'items': [
                    {
                        'product_id': i.product_id,
                        'product_name': i.product_name,
                        'quantity': i.quantity,
                        'unit_price': i.unit_price,
                    }
                    for i in order.items
                ],
            }
        )

        return OrderResponse.model_validate(order)

    def get_allowed_statuses(self, order_id: int, caller: CallerContext) -> AllowedStatusesResponse:
        """Statuses the caller may move the order to next"""
        order = self._load(order_id)
        current = OrderStatus(order.status)
        allowed = allowed_transitions(current, caller.role)
        return AllowedStatusesResponse(
            order_id=order.id,
            current_status=current,
            allowed_statuses=[s for s in OrderStatus if s in allowed],
        )

    def update_order_status(
        self,
        order_id: int,
        new_status: OrderStatus,
        caller: CallerContext,
        description: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> OrderResponse:
        """
        Move an order to a new status

        Raises:
            NotFoundError: Order does not exist
            ConflictError: Order changed since expected_version, or concurrently
            ForbiddenError: Transition not permitted for the caller's role
        """
        new_status = OrderStatus(new_status)
        order = self._load(order_id)

        if expected_version is not None and order.version != expected_version:
            raise ConflictError(
                f"Order {order_id} was modified (version {order.version}, expected {expected_version}). "
                "Please refresh and try again."
            )

        old_status = order.status
        if not can_transition(old_status, new_status, caller.role):
            storehouse_order_status_denied_total.labels(role=caller.role.value).inc()
            logger.info(
                "order_status_denied",
                order_id=order_id,
                user_id=caller.user_id,
                role=caller.role.value,
                current_status=old_status,
                requested_status=new_status.value
            )
            raise ForbiddenError(
                f"Role {caller.role.value} may not change order {order_id} "
                f"from {old_status} to {new_status.value}."
            )

        timestamp = utcnow()
        if order.status_history and order.status_history[-1].timestamp > timestamp:
            # Keep history monotonic if the clock stepped back
            timestamp = order.status_history[-1].timestamp

        entry = OrderStatusHistory(
            updated_by_user_id=caller.user_id,
            status=new_status.value,
            description=description if description is not None else f"Status updated to {new_status.value}",
            timestamp=timestamp,
        )

        try:
            order = self.repository.append_status(order, entry)
        except StaleDataError:
            raise ConflictError(
                f"Order {order_id} was modified by another user. Please refresh and try again."
            )

        storehouse_order_status_transitions_total.labels(
            from_status=old_status, to_status=new_status.value
        ).inc()
        logger.info(
            "order_status_updated",
            order_id=order_id,
            user_id=caller.user_id,
            old_status=old_status,
            new_status=new_status.value
        )

        self._notify(
            self.event_publisher.publish_order_status_changed,
            {
                'order_id': order.id,
                'company_id': order.company_id,
                'old_status': old_status,
                'new_status': order.status,
                'updated_by_user_name': self._user_name(caller),
                'description': entry.description,
                'timestamp': entry.timestamp.isoformat(),
                'recipients': [a.worker_id for a in order.assignments],
            }
        )

        return OrderResponse.model_validate(order)

    def assign_workers(self, order_id: int, worker_ids: List[str]) -> OrderResponse:
        """
        Replace the full set of workers assigned to an order

        An empty list un-assigns everyone. Only workers that were not
        assigned before are notified.

        Raises:
            NotFoundError: Order does not exist
            ValidationError: A worker ID does not resolve to a user
        """
        order = self._load(order_id)

        unique_ids = list(dict.fromkeys(worker_ids))
        known = {user.id for user in self.user_repository.get_by_ids(unique_ids)}
        missing = [w for w in unique_ids if w not in known]
        if missing:
            raise ValidationError(f"Unknown worker id(s): {', '.join(missing)}")

        previous = {a.worker_id for a in order.assignments}
        assigned_at = utcnow()
        order = self.repository.replace_assignments(order, unique_ids, assigned_at)

        added = [w for w in unique_ids if w not in previous]
        removed = sorted(previous - set(unique_ids))
        logger.info(
            "order_workers_assigned",
            order_id=order_id,
            workers=unique_ids,
            added=added,
            removed=removed
        )

        if added:
            self._notify(
                self.event_publisher.publish_workers_assigned,
                {
                    'order_id': order.id,
                    'company_id': order.company_id,
                    'client_name': order.client_name,
                    'worker_ids': added,
                    'assigned_at': assigned_at.isoformat(),
                    'message': f"You have been assigned to order #{order.id}.",
                }
            )

        return OrderResponse.model_validate(order)

    def get_sales_summary(self, now: Optional[datetime] = None) -> SalesSummaryResponse:
        """Daily, monthly and yearly sales compared with the previous period"""
        now = now or utcnow()

        def compare(periods):
            current, previous = periods
            return sales_summary.compare_periods(
                self._sales_amount(*current), self._sales_amount(*previous)
            )

        return SalesSummaryResponse(
            daily_sales=compare(sales_summary.day_periods(now)),
            monthly_sales=compare(sales_summary.month_periods(now)),
            yearly_sales=compare(sales_summary.year_periods(now)),
        )

    def export_orders(self, export_format: str, caller: CallerContext) -> Tuple[Union[str, bytes], str, str]:
        """Export the caller's company orders as (content, media type, file name)"""
        export_format = order_export.normalize_format(export_format)
        orders = self.repository.get_all(company_id=caller.company_id, limit=None)
        return self._export(orders, export_format, "orders_detailed")
    
    def export_order(self, order_id: int, export_format: str) -> Tuple[Union[str, bytes], str, str]:
        """Export one order as (content, media type, file name)"""
        export_format = order_export.normalize_format(export_format)
        return self._export([self._load(order_id)], export_format, f"order_{order_id}")
    
    def _export(self, orders: List[Order], export_format: str, stem: str) -> Tuple[Union[str, bytes], str, str]:
        user_names = self.user_repository.get_names(
            {o.user_id for o in orders if o.user_id}
        )
        rows = order_export.flatten_orders(orders, user_names)
        content, media_type = order_export.render(rows, export_format)
        return content, media_type, order_export.export_filename(stem, export_format, utcnow())
    
    def _sales_amount(self, start: datetime, end: datetime) -> float:
        orders = self.repository.get_created_between(start, end, sales_summary.SALES_STATUSES)
        return sum(o.total_price for o in orders)

    def _user_name(self, caller: CallerContext) -> str:
        if caller.user_name:
            return caller.user_name
        user = self.user_repository.get_by_id(caller.user_id)
        return user.user_name if user else caller.user_id

    def _notify(self, publish, payload: dict):
        # Publishing runs after the response when a dispatcher defers it
        self.dispatch(self._publish_quietly, publish, payload)
    
    @staticmethod
    def _publish_quietly(publish, payload: dict):
        # Failure to notify never fails the state change
        try:
            publish(payload)
        except Exception as e:
            logger.warning(
                "order_notification_failed",
                order_id=payload.get('order_id'),
                error=str(e)
            )
