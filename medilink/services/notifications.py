"""
Notifications: best-effort writes triggered by order and bid events, and the
receiver-side read API (list, unread count, mark read).
"""
import logging

from medilink.core.errors import NotFound
from medilink.core.principal import PharmacyPrincipal, Principal
from medilink.models.notification import Notification
from medilink.models.order import Order
from medilink.repositories.base import Store
from medilink.services.matching import pharmacies_near

logger = logging.getLogger(__name__)

ORDER_CATEGORY = "order"
BID_CATEGORY = "bid"


def notify(store: Store, sender: Principal, receiver: Principal, category: str, message: str) -> bool:
    """
    Write and commit one notification. Never raises: the triggering action has
    already been committed, so a failure is logged and only this write is undone.
    """
    try:
        store.notifications.add(Notification(
            sender_id=sender.id,
            sender_type=sender.role,
            receiver_id=receiver.id,
            receiver_type=receiver.role,
            type=category,
            message=message,
            is_read=False,
        ))
        store.commit()
        return True
    except Exception:
        logger.exception(
            "notification_failed",
            extra={"receiver_id": receiver.id, "receiver_type": receiver.role, "category": category},
        )
        store.rollback()
        return False


def format_radius(radius_km: float) -> str:
    return f"{radius_km:g}"


def fanout_new_order(store: Store, sender: Principal, order: Order) -> int:
    """Notify every pharmacy within the order's radius. Returns how many were notified."""
    if not order.has_location:
        return 0
    message = f"New prescription request within {format_radius(order.radius_km)}km of your location"
    sent = 0
    for pharmacy, _distance in pharmacies_near(store, order.latitude, order.longitude, order.radius_km):
        if notify(store, sender, PharmacyPrincipal(pharmacy.id), ORDER_CATEGORY, message):
            sent += 1
    logger.info("fanout_sent", extra={"order_id": order.id, "pharmacies": sent})
    return sent


def list_for(store: Store, principal: Principal) -> list[Notification]:
    return store.notifications.list_for(principal.id, principal.role)


def unread_count(store: Store, principal: Principal) -> int:
    return store.notifications.unread_count(principal.id, principal.role)


def mark_read(store: Store, principal: Principal, notification_id: int) -> Notification:
    notification = store.notifications.get(notification_id)
    if (
        notification is None
        or notification.receiver_id != principal.id
        or notification.receiver_type != principal.role
    ):
        raise NotFound("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        store.commit()
    return notification


def mark_all_read(store: Store, principal: Principal) -> int:
    changed = store.notifications.mark_all_read(principal.id, principal.role)
    store.commit()
    return changed
