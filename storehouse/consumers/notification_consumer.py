"""
RabbitMQ Consumer for order events that turn into user notifications
"""
import json
import sys

import pika
import structlog

from storehouse.config import settings
from storehouse.publishers.event_publisher import (
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    WORKERS_ASSIGNED,
    ROUTING_KEYS,
)
from storehouse.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)

HANDLERS = {
    ORDER_CREATED: NotificationService.send_order_created_notification,
    ORDER_STATUS_CHANGED: NotificationService.send_order_status_changed_notification,
    WORKERS_ASSIGNED: NotificationService.send_workers_assigned_notification,
}


def handle_event(event: dict, notification_service: NotificationService = None) -> bool:
    """Dispatch one decoded event to its notification handler"""
    handler = HANDLERS.get(event.get("event_type"))
    if handler is None:
        logger.warning("unknown_event_type", event_type=event.get("event_type"))
        return False
    return handler(notification_service or NotificationService(), event.get("data", {}))


def callback(ch, method, properties, body):
    """
    Process one order event message
    
    Acks on success; nacks without requeue on failure.
    """
    try:
        event = json.loads(body)
        event_id = event.get("event_id")
        logger.info("event_received", event_type=event.get("event_type"), event_id=event_id)
        
        if handle_event(event):
            ch.basic_ack(delivery_tag=method.delivery_tag)
            logger.info("event_processed", event_id=event_id)
        else:
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            logger.warning("event_processing_failed", event_id=event_id)
    
    except json.JSONDecodeError as e:
        logger.error("invalid_event_json", error=str(e))
        ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
    except Exception:
        logger.exception("event_processing_error")
        ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)


def start_consumer():
    """
    Start RabbitMQ consumer
    
    Binds the notification queue to every order event routing key
    and consumes until interrupted.
    """
    connection = None
    try:
        logger.info("connecting_to_rabbitmq", url=settings.RABBITMQ_URL)
        connection = pika.BlockingConnection(
            pika.URLParameters(settings.RABBITMQ_URL)
        )
        channel = connection.channel()
        
        channel.exchange_declare(
            exchange=settings.RABBITMQ_EXCHANGE,
            exchange_type='topic',
            durable=True
        )
        channel.queue_declare(
            queue=settings.RABBITMQ_NOTIFICATION_QUEUE,
            durable=True
        )
        for routing_key in ROUTING_KEYS.values():
            channel.queue_bind(
                exchange=settings.RABBITMQ_EXCHANGE,
                queue=settings.RABBITMQ_NOTIFICATION_QUEUE,
                routing_key=routing_key
            )
            logger.info("queue_bound", routing_key=routing_key)
        
        channel.basic_qos(prefetch_count=5)
        channel.basic_consume(
            queue=settings.RABBITMQ_NOTIFICATION_QUEUE,
            on_message_callback=callback,
            auto_ack=False  # Manual acknowledgement
        )
        
        logger.info("consumer_started", queue=settings.RABBITMQ_NOTIFICATION_QUEUE)
        channel.start_consuming()
    
    except KeyboardInterrupt:
        logger.info("consumer_stopped")
        if connection is not None and connection.is_open:
            connection.close()
        sys.exit(0)
    except Exception:
        logger.exception("consumer_failed")
        sys.exit(1)
