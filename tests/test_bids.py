"""
Tests for the bid ledger and the order lifecycle it drives.
"""
import pytest

from medilink.core.errors import NotFound, PermissionDenied, StateConflict, ValidationFailed
from medilink.models.bid import BidStatus
from medilink.models.order import OrderStatus
from medilink.services import bids, orders
from conftest import add_customer, add_order, add_pharmacy


@pytest.fixture
def market(store):
    customer = add_customer(store)
    first = add_pharmacy(store, "Alpha", 24.861, 67.011)
    second = add_pharmacy(store, "Beta", 24.862, 67.012)
    third = add_pharmacy(store, "Gamma", 24.863, 67.013)
    order = add_order(store, customer)
    return customer, [first, second, third], order


def test_transition_table():
    assert orders.next_status(OrderStatus.PENDING, orders.BID_SUBMITTED) == OrderStatus.BIDDING
    assert orders.next_status(OrderStatus.BIDDING, orders.BID_SUBMITTED) == OrderStatus.BIDDING
    assert orders.next_status(OrderStatus.BIDDING, orders.BID_ACCEPTED) == OrderStatus.COMPLETED
    assert orders.next_status(OrderStatus.PENDING, orders.OWNER_CANCELS) == OrderStatus.CANCELLED
    for terminal in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
        for event in (orders.BID_SUBMITTED, orders.BID_ACCEPTED, orders.OWNER_CANCELS):
            assert not orders.can_transition(terminal, event)


def test_submit_bid_moves_order_to_bidding_and_notifies_owner(store, market):
    customer, (alpha, _, _), order = market

    bid = bids.submit_bid(store, alpha, order.id, 100, "Ready in 1 hour")

    assert bid.status == BidStatus.PENDING
    assert store.orders.get(order.id).status == OrderStatus.BIDDING
    inbox = store.notifications.list_for(customer.id, "user")
    assert len(inbox) == 1
    assert inbox[0].type == "bid"
    assert inbox[0].message == "Alpha placed a bid of Rs. 100.00"
    assert inbox[0].sender_id == alpha.id and inbox[0].sender_type == "pharmacy"


@pytest.mark.parametrize("price", [0, -5, None])
def test_submit_bid_requires_positive_price(store, market, price):
    _, (alpha, _, _), order = market
    with pytest.raises(ValidationFailed):
        bids.submit_bid(store, alpha, order.id, price)


def test_submit_bid_unknown_order(store, market):
    _, (alpha, _, _), _ = market
    with pytest.raises(NotFound):
        bids.submit_bid(store, alpha, 999, 50)


@pytest.mark.parametrize("status", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
def test_terminal_order_rejects_bids(store, market, status):
    customer, (alpha, _, _), _ = market
    closed = add_order(store, customer, status=status)
    with pytest.raises(StateConflict):
        bids.submit_bid(store, alpha, closed.id, 80)
    assert store.bids.list_for_order(closed.id) == []


def test_one_pending_bid_per_pharmacy(store, market):
    customer, (alpha, _, _), order = market
    first = bids.submit_bid(store, alpha, order.id, 100)
    with pytest.raises(StateConflict):
        bids.submit_bid(store, alpha, order.id, 90)

    # once rejected, the pharmacy may offer again
    bids.reject_bid(store, customer, first.id)
    again = bids.submit_bid(store, alpha, order.id, 90)
    assert again.status == BidStatus.PENDING


def test_accept_bid_completes_order_and_rejects_siblings(store, market):
    customer, pharmacies, order = market
    placed = [bids.submit_bid(store, p, order.id, price) for p, price in zip(pharmacies, (120, 100, 150))]

    accepted = bids.accept_bid(store, customer, placed[1].id)

    statuses = [store.bids.get(b.id).status for b in placed]
    assert accepted.status == BidStatus.ACCEPTED
    assert statuses.count(BidStatus.ACCEPTED) == 1
    assert statuses.count(BidStatus.REJECTED) == len(placed) - 1
    assert store.orders.get(order.id).status == OrderStatus.COMPLETED

    winner_inbox = store.notifications.list_for(pharmacies[1].id, "pharmacy")
    assert [n.message for n in winner_inbox] == [bids.ACCEPTED_MESSAGE]


def test_second_accept_fails_with_state_conflict(store, market):
    customer, (alpha, beta, _), order = market
    cheap = bids.submit_bid(store, alpha, order.id, 100)
    pricey = bids.submit_bid(store, beta, order.id, 120)

    bids.accept_bid(store, customer, cheap.id)

    with pytest.raises(StateConflict):
        bids.accept_bid(store, customer, pricey.id)
    assert store.bids.get(cheap.id).status == BidStatus.ACCEPTED
    assert store.bids.get(pricey.id).status == BidStatus.REJECTED
    assert store.orders.get(order.id).status == OrderStatus.COMPLETED


def test_accept_lost_race_leaves_no_partial_state(store, market):
    customer, (alpha, beta, _), order = market
    mine = bids.submit_bid(store, alpha, order.id, 100)
    bids.submit_bid(store, beta, order.id, 110)
    # another request completes the order between our read and our write
    real_cas = store.orders.compare_and_set_status

    def racing_cas(order_id, expected, new):
        store.orders.rows[order_id].status = OrderStatus.COMPLETED
        return real_cas(order_id, expected, new)

    store.orders.compare_and_set_status = racing_cas
    with pytest.raises(StateConflict):
        bids.accept_bid(store, customer, mine.id)
    assert store.bids.get(mine.id).status == BidStatus.PENDING
    assert store.rollbacks >= 1


def test_accept_requires_order_owner(store, market):
    _, (alpha, _, _), order = market
    stranger = add_customer(store, "Bilal")
    bid = bids.submit_bid(store, alpha, order.id, 100)

    with pytest.raises(PermissionDenied):
        bids.accept_bid(store, stranger, bid.id)
    with pytest.raises(NotFound):
        bids.accept_bid(store, stranger, 12345)


def test_reject_bid_leaves_siblings_and_order_alone(store, market):
    customer, (alpha, beta, _), order = market
    one = bids.submit_bid(store, alpha, order.id, 100)
    two = bids.submit_bid(store, beta, order.id, 120)

    rejected = bids.reject_bid(store, customer, one.id)

    assert rejected.status == BidStatus.REJECTED
    assert store.bids.get(two.id).status == BidStatus.PENDING
    assert store.orders.get(order.id).status == OrderStatus.BIDDING
    inbox = store.notifications.list_for(alpha.id, "pharmacy")
    assert [n.message for n in inbox] == [bids.REJECTED_MESSAGE]


def test_rejected_bid_cannot_be_accepted(store, market):
    customer, (alpha, _, _), order = market
    bid = bids.submit_bid(store, alpha, order.id, 100)
    bids.reject_bid(store, customer, bid.id)

    with pytest.raises(StateConflict):
        bids.accept_bid(store, customer, bid.id)
    assert store.orders.get(order.id).status == OrderStatus.BIDDING


def test_accepted_bid_cannot_be_rejected(store, market):
    customer, (alpha, _, _), order = market
    bid = bids.submit_bid(store, alpha, order.id, 100)
    bids.accept_bid(store, customer, bid.id)

    with pytest.raises(StateConflict):
        bids.reject_bid(store, customer, bid.id)


def test_bids_for_order_cheapest_first_with_pharmacy_details(store, market):
    customer, pharmacies, order = market
    for pharmacy, price in zip(pharmacies, (150, 90, 120)):
        bids.submit_bid(store, pharmacy, order.id, price)

    rows = bids.bids_for_order(store, customer, order.id)

    assert [r["price"] for r in rows] == [90, 120, 150]
    assert [r["pharmacy_name"] for r in rows] == ["Beta", "Gamma", "Alpha"]


def test_bids_for_pharmacy_include_order_summary(store, market):
    customer, (alpha, _, _), order = market
    bids.submit_bid(store, alpha, order.id, 75)

    rows = bids.bids_for_pharmacy(store, alpha)

    assert len(rows) == 1
    assert rows[0]["order_status"] == OrderStatus.BIDDING
    assert rows[0]["order_image"] == "/uploads/rx.png"


def test_cancel_order(store, market):
    customer, (alpha, _, _), order = market
    bids.submit_bid(store, alpha, order.id, 100)

    cancelled = orders.cancel_order(store, customer, order.id)

    assert cancelled.status == OrderStatus.CANCELLED
    with pytest.raises(StateConflict):
        orders.cancel_order(store, customer, order.id)
    with pytest.raises(StateConflict):
        bids.submit_bid(store, alpha, order.id, 90)


def test_cancel_requires_owner(store, market):
    _, _, order = market
    with pytest.raises(PermissionDenied):
        orders.cancel_order(store, add_customer(store, "Bilal"), order.id)


def test_rejecting_twice_notifies_once(store, market):
    customer, (alpha, _, _), order = market
    bid = bids.submit_bid(store, alpha, order.id, 100)

    bids.reject_bid(store, customer, bid.id)
    commits = store.commits
    again = bids.reject_bid(store, customer, bid.id)

    assert again.status == BidStatus.REJECTED
    assert store.commits == commits
    inbox = store.notifications.list_for(alpha.id, "pharmacy")
    assert [n.message for n in inbox] == [bids.REJECTED_MESSAGE]


def test_reject_rolls_back_when_commit_fails(store, market, monkeypatch):
    customer, (alpha, _, _), order = market
    bid = bids.submit_bid(store, alpha, order.id, 100)

    def failing_commit():
        raise RuntimeError("database is gone")

    monkeypatch.setattr(store, "commit", failing_commit)
    with pytest.raises(RuntimeError):
        bids.reject_bid(store, customer, bid.id)
    assert store.rollbacks == 1
    assert store.notifications.list_for(alpha.id, "pharmacy") == []


@pytest.mark.parametrize("radius", [0, -1, float("nan"), float("inf")])
def test_create_order_rejects_bad_radius(store, radius):
    customer = add_customer(store)
    with pytest.raises(ValidationFailed):
        orders.create_order(store, customer, "/uploads/rx.png", radius_km=radius, latitude=24.86, longitude=67.01)
    assert store.orders.rows == {}


@pytest.mark.parametrize("latitude,longitude", [
    (24.86, None),
    (91, 67.01),
    (24.86, 181),
    (float("nan"), 67.01),
    (24.86, float("inf")),
])
def test_create_order_rejects_bad_coordinates(store, latitude, longitude):
    customer = add_customer(store)
    with pytest.raises(ValidationFailed):
        orders.create_order(store, customer, "/uploads/rx.png", latitude=latitude, longitude=longitude)
