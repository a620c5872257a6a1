"""
Entry point for the notification consumer
"""
from storehouse.consumers.notification_consumer import start_consumer
from storehouse.logging_config import configure_logging

if __name__ == "__main__":
    configure_logging()
    start_consumer()
