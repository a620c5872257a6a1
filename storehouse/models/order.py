"""
SQLAlchemy models for the order aggregate
"""
import enum

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from storehouse.database import Base, utcnow


class OrderStatus(str, enum.Enum):
    """Order lifecycle states"""
    CREATED = "Created"
    BILLED = "Billed"
    READY_FOR_DELIVERY = "ReadyForDelivery"
    IN_TRANSIT = "InTransit"
    COMPLETED = "Completed"
    RETURNED = "Returned"
    CANCELED = "Canceled"


TERMINAL_STATUSES = frozenset({
    OrderStatus.COMPLETED,
    OrderStatus.RETURNED,
    OrderStatus.CANCELED,
})

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in OrderStatus)


class Order(Base):
    """Order database model"""
    
    __tablename__ = "orders"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    status = Column(String(32), nullable=False, default=OrderStatus.CREATED.value, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    total_price = Column(Float, nullable=False, default=0.0)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    client_name = Column(String(200), nullable=True)
    client_phone_number = Column(String(30), nullable=True)
    shipping_address_street = Column(String(255), nullable=True)
    shipping_address_city = Column(String(100), nullable=True)
    shipping_address_postal_code = Column(String(20), nullable=True)
    shipping_address_country = Column(String(100), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.id",
    )
    assignments = relationship(
        "OrderAssignment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderAssignment.worker_id",
    )
    
    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name='check_order_status_valid'),
    )
    
    # Every flush bumps version; a stale UPDATE raises StaleDataError
    __mapper_args__ = {"version_id_col": version}
    
    def __repr__(self):
        return f"<Order(id={self.id}, status='{self.status}', total_price={self.total_price})>"


class OrderItem(Base):
    """Order line with the unit price captured at creation"""
    
    __tablename__ = "order_items"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_name = Column(String(255), nullable=True)  # Denormalized for history
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    
    order = relationship("Order", back_populates="items")
    
    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_item_quantity_positive'),
    )
    
    @property
    def total_price(self) -> float:
        return self.quantity * self.unit_price
    
    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"


class OrderStatusHistory(Base):
    """Append-only log of status transitions"""
    
    __tablename__ = "order_status_history"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    updated_by_user_id = Column(String(64), nullable=True)
    status = Column(String(32), nullable=False)
    description = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    
    order = relationship("Order", back_populates="status_history")
    
    def __repr__(self):
        return f"<OrderStatusHistory(order_id={self.order_id}, status='{self.status}')>"


class OrderAssignment(Base):
    """Worker assigned to an order"""
    
    __tablename__ = "order_assignments"
    
    order_id = Column(Integer, ForeignKey("orders.id"), primary_key=True)
    worker_id = Column(String(64), ForeignKey("users.id"), primary_key=True)
    assigned_at = Column(DateTime, default=utcnow, nullable=False)
    
    order = relationship("Order", back_populates="assignments")
    
    def __repr__(self):
        return f"<OrderAssignment(order_id={self.order_id}, worker_id='{self.worker_id}')>"
