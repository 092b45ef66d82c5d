"""
In-process repositories holding entities in dicts. Used by the tests and by
anything that needs the services without a database.
"""
from datetime import datetime, timezone
from itertools import count
from typing import Iterable, Optional

from medilink.models.bid import Bid, BidStatus
from medilink.models.notification import Notification
from medilink.models.order import Order, OrderStatus, OPEN_STATUSES
from medilink.models.pharmacy import Pharmacy
from medilink.models.user import User
from medilink.repositories.base import BoundingBox


class _Table:
    """Id assignment and creation timestamps shared by every in-memory repository."""

    def __init__(self):
        self.rows = {}
        self._ids = count(1)

    def get(self, row_id: int):
        return self.rows.get(row_id)

    def add(self, row):
        row.id = next(self._ids)
        if getattr(row, "created_at", None) is None:
            row.created_at = datetime.now(timezone.utc)
        self.rows[row.id] = row
        return row

    def _newest_first(self, rows):
        return sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)


class MemoryUserRepository(_Table):
    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.rows.values() if u.email == email), None)

    def add(self, user: User) -> User:
        if user.status is None:
            user.status = "active"
        return super().add(user)


class MemoryPharmacyRepository(_Table):
    def get_by_email(self, email: str) -> Optional[Pharmacy]:
        return next((p for p in self.rows.values() if p.email == email), None)

    def add(self, pharmacy: Pharmacy) -> Pharmacy:
        if pharmacy.status is None:
            pharmacy.status = "active"
        return super().add(pharmacy)

    def list_active_located(self, bbox: Optional[BoundingBox] = None) -> list[Pharmacy]:
        found = []
        for pharmacy in self.rows.values():
            if pharmacy.status != "active" or not pharmacy.has_location:
                continue
            if bbox is not None:
                min_lat, max_lat, min_lon, max_lon = bbox
                if not (min_lat <= pharmacy.latitude <= max_lat and min_lon <= pharmacy.longitude <= max_lon):
                    continue
            found.append(pharmacy)
        return found


class MemoryOrderRepository(_Table):
    def add(self, order: Order) -> Order:
        if order.status is None:
            order.status = OrderStatus.PENDING
        return super().add(order)

    def list_for_user(self, user_id: int) -> list[Order]:
        return self._newest_first(o for o in self.rows.values() if o.user_id == user_id)

    def list_open_located(self) -> list[Order]:
        return self._newest_first(
            o for o in self.rows.values() if o.status in OPEN_STATUSES and o.has_location
        )

    def compare_and_set_status(
        self, order_id: int, expected: Iterable[OrderStatus], new: OrderStatus
    ) -> bool:
        order = self.rows.get(order_id)
        if order is None or order.status not in tuple(expected):
            return False
        order.status = new
        return True


class MemoryBidRepository(_Table):
    def add(self, bid: Bid) -> Bid:
        if bid.status is None:
            bid.status = BidStatus.PENDING
        return super().add(bid)

    def list_for_order(self, order_id: int) -> list[Bid]:
        return sorted(
            (b for b in self.rows.values() if b.order_id == order_id),
            key=lambda b: (b.price, b.id),
        )

    def list_for_pharmacy(self, pharmacy_id: int) -> list[Bid]:
        return self._newest_first(b for b in self.rows.values() if b.pharmacy_id == pharmacy_id)

    def has_pending(self, order_id: int, pharmacy_id: int) -> bool:
        return any(
            b.order_id == order_id and b.pharmacy_id == pharmacy_id and b.status == BidStatus.PENDING
            for b in self.rows.values()
        )

    def set_status(self, bid_id: int, status: BidStatus) -> None:
        self.rows[bid_id].status = status

    def reject_siblings(self, order_id: int, keep_bid_id: int) -> int:
        changed = 0
        for bid in self.rows.values():
            if bid.order_id == order_id and bid.id != keep_bid_id:
                bid.status = BidStatus.REJECTED
                changed += 1
        return changed


class MemoryNotificationRepository(_Table):
    def add(self, notification: Notification) -> Notification:
        if notification.is_read is None:
            notification.is_read = False
        return super().add(notification)

    def _for(self, receiver_id: int, receiver_type: str):
        return [
            n for n in self.rows.values()
            if n.receiver_id == receiver_id and n.receiver_type == receiver_type
        ]

    def list_for(self, receiver_id: int, receiver_type: str) -> list[Notification]:
        return self._newest_first(self._for(receiver_id, receiver_type))

    def unread_count(self, receiver_id: int, receiver_type: str) -> int:
        return sum(1 for n in self._for(receiver_id, receiver_type) if not n.is_read)

    def mark_all_read(self, receiver_id: int, receiver_type: str) -> int:
        changed = 0
        for notification in self._for(receiver_id, receiver_type):
            if not notification.is_read:
                notification.is_read = True
                changed += 1
        return changed


class MemoryStore:
    """Changes are visible immediately; commit and rollback only count calls."""

    def __init__(self):
        self.users = MemoryUserRepository()
        self.pharmacies = MemoryPharmacyRepository()
        self.orders = MemoryOrderRepository()
        self.bids = MemoryBidRepository()
        self.notifications = MemoryNotificationRepository()
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1
