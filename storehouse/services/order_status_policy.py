"""
Order Status Policy

Decides which role may move an order from one status to another.
Pure and side-effect free; consulted before any status mutation.
"""
from typing import FrozenSet, Union

from storehouse.models.company import Role
from storehouse.models.order import OrderStatus


_ALLOWED_TRANSITIONS = {
    (Role.COMPANY_MANAGER, OrderStatus.CREATED): frozenset({
        OrderStatus.CANCELED,
    }),
    (Role.STOREHOUSE_MANAGER, OrderStatus.CREATED): frozenset({
        OrderStatus.BILLED,
        OrderStatus.READY_FOR_DELIVERY,
    }),
    (Role.WORKER, OrderStatus.READY_FOR_DELIVERY): frozenset({
        OrderStatus.IN_TRANSIT,
        OrderStatus.COMPLETED,
    }),
    (Role.WORKER, OrderStatus.IN_TRANSIT): frozenset({
        OrderStatus.RETURNED,
        OrderStatus.COMPLETED,
    }),
}


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def allowed_transitions(
    current_status: Union[OrderStatus, str],
    caller_role: Union[Role, str]
) -> FrozenSet[OrderStatus]:
    """Statuses the role may move an order in current_status to"""
    current = _coerce(OrderStatus, current_status)
    role = _coerce(Role, caller_role)
    if current is None or role is None:
        return frozenset()
    return _ALLOWED_TRANSITIONS.get((role, current), frozenset())


def can_transition(
    current_status: Union[OrderStatus, str],
    requested_status: Union[OrderStatus, str],
    caller_role: Union[Role, str]
) -> bool:
    """
    Check whether caller_role may move an order to requested_status
    
    Anything not in the table is denied, including a request for the
    status the order already has.
    """
    requested = _coerce(OrderStatus, requested_status)
    if requested is None:
        return False
    return requested in allowed_transitions(current_status, caller_role)
