"""
Publishers package
"""
from storehouse.publishers.event_publisher import EventPublisher

__all__ = ["EventPublisher"]
