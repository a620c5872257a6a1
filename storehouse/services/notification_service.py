"""
Notification Service - renders order events into messages for recipients
"""
from typing import Dict, List, Optional

import structlog

from storehouse.config import settings

logger = structlog.get_logger(__name__)


def company_channel(company_id: Optional[int]) -> Optional[str]:
    """Broadcast recipient for everyone in a company"""
    return f"company:{company_id}" if company_id is not None else None


class NotificationService:
    """Service for sending order notifications"""
    
    def __init__(self, channel: Optional[str] = None):
        self.channel = channel or settings.NOTIFICATION_CHANNEL
    
    def send_order_created_notification(self, order_data: Dict) -> bool:
        """Notify the company that a new order was placed"""
        order_id = order_data.get("order_id")
        recipient = company_channel(order_data.get("company_id"))
        if recipient is None:
            logger.info("notification_skipped_no_company", order_id=order_id)
            return True
        
        subject = f"Order #{order_id} Created"
        body = (
            f"Order #{order_id} for {order_data.get('client_name') or 'unknown client'} "
            f"was created with {len(order_data.get('items', []))} item(s), "
            f"total {order_data.get('total_price', 0):.2f}."
        )
        return self._deliver_all([recipient], subject, body, order_id)
    
    def send_order_status_changed_notification(self, order_data: Dict) -> bool:
        """Notify assigned workers and the company about a status change"""
        order_id = order_data.get("order_id")
        recipients = list(order_data.get("recipients") or [])
        company = company_channel(order_data.get("company_id"))
        if company:
            recipients.append(company)
        
        subject = f"Order #{order_id} Status Updated"
        body = (
            f"Order #{order_id} moved from {order_data.get('old_status')} "
            f"to {order_data.get('new_status')} by {order_data.get('updated_by_user_name')} "
            f"at {order_data.get('timestamp')}."
        )
        if order_data.get("description"):
            body += f" Note: {order_data['description']}"
        return self._deliver_all(recipients, subject, body, order_id)
    
    def send_workers_assigned_notification(self, order_data: Dict) -> bool:
        """Notify each newly assigned worker"""
        order_id = order_data.get("order_id")
        subject = f"Assigned to Order #{order_id}"
        body = order_data.get("message") or f"You have been assigned to order #{order_id}."
        if order_data.get("client_name"):
            body += f" Client: {order_data['client_name']}."
        return self._deliver_all(order_data.get("worker_ids") or [], subject, body, order_id)
    
    def _deliver_all(self, recipients: List[str], subject: str, body: str, order_id) -> bool:
        results = [self._deliver(r, subject, body, order_id) for r in recipients]
        return all(results)
    
    def _deliver(self, to: str, subject: str, body: str, order_id) -> bool:
        if self.channel == "console":
            logger.info(
                "notification_delivered",
                channel=self.channel,
                to=to,
                subject=subject,
                body=body,
                order_id=order_id
            )
            return True
        
        logger.error("unknown_notification_channel", channel=self.channel, order_id=order_id)
        return False
