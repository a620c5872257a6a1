from prometheus_client import Counter

# Business Metrics
storehouse_orders_created_total = Counter(
    "storehouse_orders_created_total",
    "Total orders created"
)

storehouse_order_status_transitions_total = Counter(
    "storehouse_order_status_transitions_total",
    "Order status transitions applied",
    ["from_status", "to_status"]
)

storehouse_order_status_denied_total = Counter(
    "storehouse_order_status_denied_total",
    "Order status transitions denied by policy",
    ["role"]
)

storehouse_events_publish_failed_total = Counter(
    "storehouse_events_publish_failed_total",
    "Events that could not be published",
    ["event_type"]
)
