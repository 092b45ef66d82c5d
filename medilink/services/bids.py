"""
Bid ledger: pharmacies submit price offers on open orders; the order owner
accepts one (rejecting the rest and completing the order) or rejects single bids.
"""
import logging
import math
from typing import Optional

from medilink.core.errors import NotFound, PermissionDenied, StateConflict, ValidationFailed
from medilink.core.principal import CustomerPrincipal, PharmacyPrincipal, Principal
from medilink.models.bid import Bid, BidStatus
from medilink.models.order import OrderStatus
from medilink.repositories.base import Store
from medilink.services import notifications
from medilink.services.orders import (
    BID_ACCEPTED,
    BID_SUBMITTED,
    can_transition,
    get_order,
    next_status,
    sources_for,
)

logger = logging.getLogger(__name__)

ACCEPTED_MESSAGE = "Your bid has been accepted! Customer will visit soon."
REJECTED_MESSAGE = "Your bid has been rejected by the customer."


def format_price(price: float) -> str:
    return f"{price:.2f}"


def submit_bid(
    store: Store,
    pharmacy: PharmacyPrincipal,
    order_id: int,
    price: Optional[float],
    message: Optional[str] = None,
) -> Bid:
    if price is None or not math.isfinite(price) or round(float(price), 2) <= 0:
        raise ValidationFailed("Price must be greater than 0")

    order = store.orders.get(order_id)
    if order is None:
        raise NotFound("Order not found")
    if not can_transition(order.status, BID_SUBMITTED):
        raise StateConflict("Cannot bid on this order")

    seller = store.pharmacies.get(pharmacy.id)
    if seller is None:
        raise NotFound("Pharmacy not found")
    if store.bids.has_pending(order.id, pharmacy.id):
        raise StateConflict("You already have a pending bid on this order")

    # Conditional update doubles as the open-order check, so a concurrent
    # cancel or accept that commits first makes this bid fail
    if not store.orders.compare_and_set_status(
        order.id, sources_for(BID_SUBMITTED), next_status(order.status, BID_SUBMITTED)
    ):
        store.rollback()
        raise StateConflict("Cannot bid on this order")
    try:
        bid = store.bids.add(Bid(
            order_id=order.id,
            pharmacy_id=pharmacy.id,
            price=round(float(price), 2),
            message=message or None,
            status=BidStatus.PENDING,
        ))
        store.commit()
    except Exception:
        store.rollback()
        raise
    logger.info(
        "bid_submitted",
        extra={"bid_id": bid.id, "order_id": order.id, "pharmacy_id": pharmacy.id},
    )

    notifications.notify(
        store,
        pharmacy,
        CustomerPrincipal(order.user_id),
        notifications.BID_CATEGORY,
        f"{seller.pharmacy_name} placed a bid of Rs. {format_price(bid.price)}",
    )
    return bid


def _owned_bid(store: Store, customer: CustomerPrincipal, bid_id: int):
    bid = store.bids.get(bid_id)
    if bid is None:
        raise NotFound("Bid not found")
    order = store.orders.get(bid.order_id)
    if order is None:
        raise NotFound("Order not found")
    if order.user_id != customer.id:
        raise PermissionDenied("Not authorized")
    return bid, order


def accept_bid(store: Store, customer: CustomerPrincipal, bid_id: int) -> Bid:
    """
    Accept one bid as a single transaction: the order moves to completed, the bid
    to accepted and every sibling bid to rejected. The order status change is a
    compare-and-set, so of two racing acceptances only one can succeed.
    """
    bid, order = _owned_bid(store, customer, bid_id)
    if not can_transition(order.status, BID_ACCEPTED):
        raise StateConflict("Bid is no longer available")
    if bid.status != BidStatus.PENDING:
        raise StateConflict("Bid is no longer available")

    try:
        if not store.orders.compare_and_set_status(
            order.id, sources_for(BID_ACCEPTED), OrderStatus.COMPLETED
        ):
            raise StateConflict("Bid is no longer available")
        store.bids.set_status(bid.id, BidStatus.ACCEPTED)
        rejected = store.bids.reject_siblings(order.id, bid.id)
        store.commit()
    except Exception:
        store.rollback()
        raise
    logger.info(
        "bid_accepted",
        extra={"bid_id": bid.id, "order_id": order.id, "rejected_siblings": rejected},
    )

    bid = store.bids.get(bid.id)
    notifications.notify(
        store,
        customer,
        PharmacyPrincipal(bid.pharmacy_id),
        notifications.BID_CATEGORY,
        ACCEPTED_MESSAGE,
    )
    return bid


def reject_bid(store: Store, customer: CustomerPrincipal, bid_id: int) -> Bid:
    """Reject a single bid. Sibling bids and the order status are left alone."""
    bid, _order = _owned_bid(store, customer, bid_id)
    if bid.status == BidStatus.ACCEPTED:
        raise StateConflict("An accepted bid cannot be rejected")
    if bid.status == BidStatus.REJECTED:
        return bid

    try:
        store.bids.set_status(bid.id, BidStatus.REJECTED)
        store.commit()
    except Exception:
        store.rollback()
        raise
    logger.info("bid_rejected", extra={"bid_id": bid.id, "order_id": bid.order_id})

    bid = store.bids.get(bid.id)
    notifications.notify(
        store,
        customer,
        PharmacyPrincipal(bid.pharmacy_id),
        notifications.BID_CATEGORY,
        REJECTED_MESSAGE,
    )
    return bid


def bids_for_order(store: Store, principal: Principal, order_id: int) -> list[dict]:
    """Bids on an order, cheapest first, each with the bidding pharmacy's details."""
    order = get_order(store, principal, order_id)
    rows = []
    for bid in store.bids.list_for_order(order.id):
        pharmacy = store.pharmacies.get(bid.pharmacy_id)
        rows.append({
            "id": bid.id,
            "order_id": bid.order_id,
            "pharmacy_id": bid.pharmacy_id,
            "price": bid.price,
            "message": bid.message,
            "status": bid.status,
            "created_at": bid.created_at,
            "pharmacy_name": pharmacy.pharmacy_name if pharmacy else None,
            "pharmacy_phone": pharmacy.phone if pharmacy else None,
            "pharmacy_address": pharmacy.address if pharmacy else None,
            "pharmacy_rating": pharmacy.rating_avg if pharmacy else None,
        })
    return rows


def bids_for_pharmacy(store: Store, pharmacy: PharmacyPrincipal) -> list[dict]:
    """The pharmacy's own bids, newest first, each with its order's summary."""
    rows = []
    for bid in store.bids.list_for_pharmacy(pharmacy.id):
        order = store.orders.get(bid.order_id)
        rows.append({
            "id": bid.id,
            "order_id": bid.order_id,
            "pharmacy_id": bid.pharmacy_id,
            "price": bid.price,
            "message": bid.message,
            "status": bid.status,
            "created_at": bid.created_at,
            "order_image": order.image_url if order else None,
            "order_description": order.description if order else None,
            "order_status": order.status if order else None,
        })
    return rows
