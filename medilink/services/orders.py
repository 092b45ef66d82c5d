"""
Order lifecycle: creation with pharmacy fanout, owner reads, and cancellation.

Status moves pending -> bidding -> completed, or pending/bidding -> cancelled.
completed and cancelled are terminal.
"""
import logging
import math
from typing import Optional

from medilink.core.config import DEFAULT_RADIUS_KM
from medilink.core.errors import NotFound, PermissionDenied, StateConflict, ValidationFailed
from medilink.core.principal import CustomerPrincipal, Principal
from medilink.models.order import Order, OrderStatus, TERMINAL_STATUSES
from medilink.repositories.base import Store
from medilink.services import notifications

logger = logging.getLogger(__name__)

BID_SUBMITTED = "bid_submitted"
BID_ACCEPTED = "bid_accepted"
OWNER_CANCELS = "owner_cancels"

# (from status, event) -> to status; missing pairs are invalid transitions
TRANSITIONS = {
    (OrderStatus.PENDING, BID_SUBMITTED): OrderStatus.BIDDING,
    (OrderStatus.BIDDING, BID_SUBMITTED): OrderStatus.BIDDING,
    (OrderStatus.PENDING, BID_ACCEPTED): OrderStatus.COMPLETED,
    (OrderStatus.BIDDING, BID_ACCEPTED): OrderStatus.COMPLETED,
    (OrderStatus.PENDING, OWNER_CANCELS): OrderStatus.CANCELLED,
    (OrderStatus.BIDDING, OWNER_CANCELS): OrderStatus.CANCELLED,
}


def next_status(current: OrderStatus, event: str) -> Optional[OrderStatus]:
    return TRANSITIONS.get((OrderStatus(current), event))


def can_transition(current: OrderStatus, event: str) -> bool:
    return next_status(current, event) is not None


def sources_for(event: str) -> tuple[OrderStatus, ...]:
    """Every status from which `event` is allowed."""
    return tuple(source for source, name in TRANSITIONS if name == event)


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def validate_order_fields(
    radius_km: Optional[float] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> float:
    """Check the searchable fields of a new order and return the effective radius."""
    if radius_km is None:
        radius_km = DEFAULT_RADIUS_KM
    if not math.isfinite(radius_km) or radius_km <= 0:
        raise ValidationFailed("Radius must be greater than 0")
    if (latitude is None) != (longitude is None):
        raise ValidationFailed("Latitude and longitude must be given together")
    # NaN and infinities fail the range comparisons
    if latitude is not None and not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        raise ValidationFailed("Coordinates are out of range")
    return radius_km


def create_order(
    store: Store,
    customer: CustomerPrincipal,
    image_url: str,
    description: Optional[str] = None,
    radius_km: Optional[float] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> Order:
    radius_km = validate_order_fields(radius_km, latitude, longitude)

    try:
        order = store.orders.add(Order(
            user_id=customer.id,
            image_url=image_url,
            description=description or None,
            radius_km=radius_km,
            latitude=latitude,
            longitude=longitude,
            status=OrderStatus.PENDING,
        ))
        store.commit()
    except Exception:
        store.rollback()
        raise
    logger.info("order_created", extra={"order_id": order.id, "user_id": customer.id})

    # Orders without a location are only ever visible to their owner
    if order.has_location:
        notifications.fanout_new_order(store, customer, order)
    return order


def list_orders(store: Store, customer: CustomerPrincipal) -> list[Order]:
    return store.orders.list_for_user(customer.id)


def get_order(store: Store, principal: Principal, order_id: int) -> Order:
    """Owners see their own orders; pharmacies may read any order they could bid on."""
    order = store.orders.get(order_id)
    if order is None:
        raise NotFound("Order not found")
    if isinstance(principal, CustomerPrincipal) and order.user_id != principal.id:
        raise PermissionDenied("Not authorized to view this order")
    return order


def get_owned_order(store: Store, customer: CustomerPrincipal, order_id: int) -> Order:
    order = store.orders.get(order_id)
    if order is None:
        raise NotFound("Order not found")
    if order.user_id != customer.id:
        raise PermissionDenied("Not authorized")
    return order


def cancel_order(store: Store, customer: CustomerPrincipal, order_id: int) -> Order:
    order = get_owned_order(store, customer, order_id)
    if not can_transition(order.status, OWNER_CANCELS):
        raise StateConflict("Cannot cancel this order")
    if not store.orders.compare_and_set_status(order.id, sources_for(OWNER_CANCELS), OrderStatus.CANCELLED):
        store.rollback()
        raise StateConflict("Cannot cancel this order")
    store.commit()
    logger.info("order_cancelled", extra={"order_id": order.id, "user_id": customer.id})
    return store.orders.get(order.id)
