"""
RabbitMQ Event Publisher
"""
import uuid
from typing import Dict

import pika
import structlog

from storehouse.config import settings
from storehouse.database import utcnow
from storehouse.metrics import storehouse_events_publish_failed_total
from storehouse.schemas.order import OrderEvent

logger = structlog.get_logger(__name__)

ORDER_CREATED = "OrderCreated"
ORDER_STATUS_CHANGED = "OrderStatusChanged"
WORKERS_ASSIGNED = "WorkersAssigned"

ROUTING_KEYS = {
    ORDER_CREATED: "order.created",
    ORDER_STATUS_CHANGED: "order.status.changed",
    WORKERS_ASSIGNED: "order.workers.assigned",
}


class EventPublisher:
    """Publisher for sending order events to RabbitMQ"""
    
    def __init__(self):
        self.rabbitmq_url = settings.RABBITMQ_URL
        self.exchange = settings.RABBITMQ_EXCHANGE
        self.enabled = settings.NOTIFICATIONS_ENABLED
    
    def publish_order_created(self, order_data: Dict) -> bool:
        """Publish OrderCreated event"""
        return self._publish(ORDER_CREATED, order_data)
    
    def publish_order_status_changed(self, order_data: Dict) -> bool:
        """
        Publish OrderStatusChanged event
        
        Args:
            order_data: order_id, old_status, new_status, updated_by_user_name,
                description, timestamp, company_id and recipients
        
        Returns:
            True if published successfully, False otherwise
        """
        return self._publish(ORDER_STATUS_CHANGED, order_data)
    
    def publish_workers_assigned(self, order_data: Dict) -> bool:
        """Publish WorkersAssigned event for newly assigned workers"""
        return self._publish(WORKERS_ASSIGNED, order_data)
    
    def _publish(self, event_type: str, data: Dict) -> bool:
        if not self.enabled:
            logger.debug("event_publishing_disabled", event_type=event_type)
            return False
        
        event = OrderEvent(
            event_type=event_type,
            event_id=str(uuid.uuid4()),
            timestamp=utcnow().isoformat(),
            source=settings.SERVICE_NAME,
            data=data,
        )
        
        try:
            connection = pika.BlockingConnection(
                pika.URLParameters(self.rabbitmq_url)
            )
            try:
                channel = connection.channel()
                
                channel.exchange_declare(
                    exchange=self.exchange,
                    exchange_type='topic',
                    durable=True
                )
                
                # Enable publisher confirms
                channel.confirm_delivery()
                
                channel.basic_publish(
                    exchange=self.exchange,
                    routing_key=ROUTING_KEYS[event_type],
                    body=event.model_dump_json(),
                    properties=pika.BasicProperties(
                        delivery_mode=2,  # Persistent message
                        content_type='application/json',
                        correlation_id=event.event_id
                    ),
                    mandatory=False
                )
            finally:
                connection.close()
            
            logger.info("event_published", event_type=event_type, event_id=event.event_id)
            return True
        
        except Exception as e:
            storehouse_events_publish_failed_total.labels(event_type=event_type).inc()
            logger.warning(
                "event_publish_failed",
                event_type=event_type,
                event_id=event.event_id,
                error=str(e)
            )
            return False
