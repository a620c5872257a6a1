"""
Order Repository - Data Access Layer
"""
from datetime import datetime
from typing import List, Optional, Iterable
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc

from storehouse.database import commit_or_rollback
from storehouse.models.order import Order, OrderAssignment, OrderStatusHistory


class OrderRepository:
    """Repository for Order aggregate persistence"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def _query(self):
        return self.db.query(Order).options(
            selectinload(Order.items),
            selectinload(Order.status_history),
            selectinload(Order.assignments),
        )
    
    def get_all(
        self,
        company_id: Optional[int] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Order]:
        """Get orders newest first, optionally scoped to a company and status"""
        query = self._query()
        if company_id is not None:
            query = query.filter(Order.company_id == company_id)
        if status is not None:
            query = query.filter(Order.status == status)
        return query.order_by(desc(Order.created_at), desc(Order.id)).offset(skip).limit(limit).all()
    
    def count(self, company_id: Optional[int] = None, status: Optional[str] = None) -> int:
        """Get total count of orders"""
        query = self.db.query(Order)
        if company_id is not None:
            query = query.filter(Order.company_id == company_id)
        if status is not None:
            query = query.filter(Order.status == status)
        return query.count()
    
    def get_by_id(self, order_id: int) -> Optional[Order]:
        """Get order by ID with items, history and assignments"""
        return self._query().filter(Order.id == order_id).first()
    
    def get_by_worker(self, worker_id: str) -> List[Order]:
        """Get orders a worker is assigned to"""
        return self._query().join(
            OrderAssignment, OrderAssignment.order_id == Order.id
        ).filter(
            OrderAssignment.worker_id == worker_id
        ).order_by(desc(Order.created_at), desc(Order.id)).all()
    
    def get_created_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[str]
    ) -> List[Order]:
        """Get orders created in [start, end) with one of the given statuses"""
        return self.db.query(Order).filter(
            Order.created_at >= start,
            Order.created_at < end,
            Order.status.in_(list(statuses))
        ).all()
    
    def add(self, order: Order) -> Order:
        """
        Persist a new order with its items and history
        
        Pending changes already in the session (stock decrements) are
        committed together with the order.
        """
        self.db.add(order)
        self.commit()
        self.db.refresh(order)
        return order
    
    def append_status(self, order: Order, entry: OrderStatusHistory) -> Order:
        """Set the order status and append a history entry in one commit"""
        order.status = entry.status
        order.status_history.append(entry)
        self.commit()
        self.db.refresh(order)
        return order
    
    def replace_assignments(
        self,
        order: Order,
        worker_ids: List[str],
        assigned_at: datetime
    ) -> Order:
        """Replace every assignment of the order with the given workers"""
        order.assignments.clear()
        try:
            # Old rows must be gone before the same keys are inserted again
            self.db.flush()
        except Exception:
            self.db.rollback()
            raise
        order.assignments.extend(
            OrderAssignment(worker_id=worker_id, assigned_at=assigned_at)
            for worker_id in worker_ids
        )
        self.commit()
        self.db.refresh(order)
        return order
    
    def commit(self):
        """Commit, rolling back on failure"""
        commit_or_rollback(self.db)
