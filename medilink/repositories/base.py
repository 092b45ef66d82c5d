"""
Repository interfaces, one per entity, bundled in a Store that owns the transaction.

Services depend only on these protocols; `sql.py` backs them with a SQLAlchemy
session and `memory.py` with plain dicts.
"""
from typing import Iterable, Optional, Protocol

from medilink.models.bid import Bid, BidStatus
from medilink.models.notification import Notification
from medilink.models.order import Order, OrderStatus
from medilink.models.pharmacy import Pharmacy
from medilink.models.user import User

# (min_lat, max_lat, min_lon, max_lon)
BoundingBox = tuple[float, float, float, float]


class UserRepository(Protocol):
    def get(self, user_id: int) -> Optional[User]: ...
    def get_by_email(self, email: str) -> Optional[User]: ...
    def add(self, user: User) -> User: ...


class PharmacyRepository(Protocol):
    def get(self, pharmacy_id: int) -> Optional[Pharmacy]: ...
    def get_by_email(self, email: str) -> Optional[Pharmacy]: ...
    def add(self, pharmacy: Pharmacy) -> Pharmacy: ...
    def list_active_located(self, bbox: Optional[BoundingBox] = None) -> list[Pharmacy]: ...


class OrderRepository(Protocol):
    def get(self, order_id: int) -> Optional[Order]: ...
    def add(self, order: Order) -> Order: ...
    def list_for_user(self, user_id: int) -> list[Order]: ...
    def list_open_located(self) -> list[Order]: ...
    def compare_and_set_status(
        self, order_id: int, expected: Iterable[OrderStatus], new: OrderStatus
    ) -> bool: ...


class BidRepository(Protocol):
    def get(self, bid_id: int) -> Optional[Bid]: ...
    def add(self, bid: Bid) -> Bid: ...
    def list_for_order(self, order_id: int) -> list[Bid]: ...
    def list_for_pharmacy(self, pharmacy_id: int) -> list[Bid]: ...
    def has_pending(self, order_id: int, pharmacy_id: int) -> bool: ...
    def set_status(self, bid_id: int, status: BidStatus) -> None: ...
    def reject_siblings(self, order_id: int, keep_bid_id: int) -> int: ...


class NotificationRepository(Protocol):
    def get(self, notification_id: int) -> Optional[Notification]: ...
    def add(self, notification: Notification) -> Notification: ...
    def list_for(self, receiver_id: int, receiver_type: str) -> list[Notification]: ...
    def unread_count(self, receiver_id: int, receiver_type: str) -> int: ...
    def mark_all_read(self, receiver_id: int, receiver_type: str) -> int: ...


class Store(Protocol):
    users: UserRepository
    pharmacies: PharmacyRepository
    orders: OrderRepository
    bids: BidRepository
    notifications: NotificationRepository

    def commit(self) -> None: ...
    def rollback(self) -> None: ...
