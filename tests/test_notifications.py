"""
Tests for notification fanout and the receiver-side read operations.
"""
import pytest

from medilink.core.errors import NotFound
from medilink.models.order import OrderStatus
from medilink.repositories.memory import MemoryNotificationRepository
from medilink.services import bids, notifications, orders
from conftest import add_customer, add_pharmacy


class BrokenNotifications(MemoryNotificationRepository):
    def add(self, notification):
        raise RuntimeError("notification store is down")


def test_order_creation_fans_out_to_pharmacies_in_radius(store):
    customer = add_customer(store)
    near = add_pharmacy(store, "Near", 24.87, 67.02)
    far = add_pharmacy(store, "Far", 24.90, 67.05)
    add_pharmacy(store, "Unlocated")

    order = orders.create_order(store, customer, "/uploads/rx.png", radius_km=5, latitude=24.86, longitude=67.01)

    assert order.status == OrderStatus.PENDING
    inbox = store.notifications.list_for(near.id, "pharmacy")
    assert len(inbox) == 1
    assert inbox[0].type == "order"
    assert inbox[0].message == "New prescription request within 5km of your location"
    assert store.notifications.list_for(far.id, "pharmacy") == []


def test_order_without_location_skips_fanout(store):
    customer = add_customer(store)
    add_pharmacy(store, "Near", 24.87, 67.02)

    orders.create_order(store, customer, "/uploads/rx.png", radius_km=5)

    assert store.notifications.rows == {}


def test_fanout_failure_does_not_undo_the_bid(store):
    customer = add_customer(store)
    pharmacy = add_pharmacy(store, "Near", 24.87, 67.02)
    order = orders.create_order(store, customer, "/uploads/rx.png", radius_km=5, latitude=24.86, longitude=67.01)
    store.notifications = BrokenNotifications()

    bid = bids.submit_bid(store, pharmacy, order.id, 100)

    assert store.bids.get(bid.id) is bid
    assert store.orders.get(order.id).status == OrderStatus.BIDDING
    assert store.rollbacks == 1


def test_unread_count_and_mark_read_is_idempotent(store):
    customer = add_customer(store)
    pharmacy = add_pharmacy(store, "Near", 24.87, 67.02)
    order = orders.create_order(store, customer, "/uploads/rx.png")
    bids.submit_bid(store, pharmacy, order.id, 100)
    note = notifications.list_for(store, customer)[0]

    assert notifications.unread_count(store, customer) == 1
    notifications.mark_read(store, customer, note.id)
    commits = store.commits
    notifications.mark_read(store, customer, note.id)

    assert store.notifications.get(note.id).is_read is True
    assert store.commits == commits
    assert notifications.unread_count(store, customer) == 0


def test_mark_read_of_someone_elses_notification(store):
    customer = add_customer(store)
    pharmacy = add_pharmacy(store, "Near", 24.87, 67.02)
    order = orders.create_order(store, customer, "/uploads/rx.png")
    bids.submit_bid(store, pharmacy, order.id, 100)
    note = notifications.list_for(store, customer)[0]

    with pytest.raises(NotFound):
        notifications.mark_read(store, pharmacy, note.id)


def test_mark_all_read_and_newest_first(store):
    customer = add_customer(store)
    order = orders.create_order(store, customer, "/uploads/rx.png")
    for name, price in (("One", 10), ("Two", 20), ("Three", 30)):
        bids.submit_bid(store, add_pharmacy(store, name), order.id, price)

    listed = notifications.list_for(store, customer)
    assert [n.message for n in listed] == [
        "Three placed a bid of Rs. 30.00",
        "Two placed a bid of Rs. 20.00",
        "One placed a bid of Rs. 10.00",
    ]
    assert notifications.mark_all_read(store, customer) == 3
    assert notifications.unread_count(store, customer) == 0
