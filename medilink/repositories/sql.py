"""
SQLAlchemy-backed repositories. All repositories of a SqlStore share one session,
so a service's writes land in a single transaction until `commit()`.
"""
from typing import Iterable, Optional

from fastapi import Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from medilink.database import get_db
from medilink.models.bid import Bid, BidStatus
from medilink.models.notification import Notification
from medilink.models.order import Order, OrderStatus, OPEN_STATUSES
from medilink.models.pharmacy import Pharmacy
from medilink.models.user import User
from medilink.repositories.base import BoundingBox


class SqlUserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def add(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user


class SqlPharmacyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, pharmacy_id: int) -> Optional[Pharmacy]:
        return self.db.query(Pharmacy).filter(Pharmacy.id == pharmacy_id).first()

    def get_by_email(self, email: str) -> Optional[Pharmacy]:
        return self.db.query(Pharmacy).filter(Pharmacy.email == email).first()

    def add(self, pharmacy: Pharmacy) -> Pharmacy:
        self.db.add(pharmacy)
        self.db.flush()
        return pharmacy

    def list_active_located(self, bbox: Optional[BoundingBox] = None) -> list[Pharmacy]:
        query = self.db.query(Pharmacy).filter(
            Pharmacy.status == "active",
            Pharmacy.latitude.isnot(None),
            Pharmacy.longitude.isnot(None),
        )
        if bbox is not None:
            min_lat, max_lat, min_lon, max_lon = bbox
            query = query.filter(
                Pharmacy.latitude.between(min_lat, max_lat),
                Pharmacy.longitude.between(min_lon, max_lon),
            )
        return query.all()


class SqlOrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: int) -> Optional[Order]:
        return self.db.query(Order).filter(Order.id == order_id).first()

    def add(self, order: Order) -> Order:
        self.db.add(order)
        self.db.flush()
        return order

    def list_for_user(self, user_id: int) -> list[Order]:
        return self.db.query(Order).filter(
            Order.user_id == user_id
        ).order_by(Order.created_at.desc(), Order.id.desc()).all()

    def list_open_located(self) -> list[Order]:
        return self.db.query(Order).filter(
            Order.status.in_(OPEN_STATUSES),
            Order.latitude.isnot(None),
            Order.longitude.isnot(None),
        ).order_by(Order.created_at.desc(), Order.id.desc()).all()

    def compare_and_set_status(
        self, order_id: int, expected: Iterable[OrderStatus], new: OrderStatus
    ) -> bool:
        # Single conditional UPDATE; a concurrent writer that got there first leaves 0 rows
        updated = self.db.query(Order).filter(
            Order.id == order_id,
            Order.status.in_(list(expected)),
        ).update({Order.status: new}, synchronize_session="fetch")
        return updated == 1


class SqlBidRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, bid_id: int) -> Optional[Bid]:
        return self.db.query(Bid).filter(Bid.id == bid_id).first()

    def add(self, bid: Bid) -> Bid:
        self.db.add(bid)
        self.db.flush()
        return bid

    def list_for_order(self, order_id: int) -> list[Bid]:
        return self.db.query(Bid).filter(
            Bid.order_id == order_id
        ).order_by(Bid.price.asc(), Bid.id.asc()).all()

    def list_for_pharmacy(self, pharmacy_id: int) -> list[Bid]:
        return self.db.query(Bid).filter(
            Bid.pharmacy_id == pharmacy_id
        ).order_by(Bid.created_at.desc(), Bid.id.desc()).all()

    def has_pending(self, order_id: int, pharmacy_id: int) -> bool:
        return self.db.query(Bid.id).filter(
            Bid.order_id == order_id,
            Bid.pharmacy_id == pharmacy_id,
            Bid.status == BidStatus.PENDING,
        ).first() is not None

    def set_status(self, bid_id: int, status: BidStatus) -> None:
        self.db.query(Bid).filter(Bid.id == bid_id).update(
            {Bid.status: status}, synchronize_session="fetch"
        )

    def reject_siblings(self, order_id: int, keep_bid_id: int) -> int:
        return self.db.query(Bid).filter(
            Bid.order_id == order_id,
            Bid.id != keep_bid_id,
        ).update({Bid.status: BidStatus.REJECTED}, synchronize_session="fetch")


class SqlNotificationRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, notification_id: int) -> Optional[Notification]:
        return self.db.query(Notification).filter(Notification.id == notification_id).first()

    def add(self, notification: Notification) -> Notification:
        self.db.add(notification)
        self.db.flush()
        return notification

    def list_for(self, receiver_id: int, receiver_type: str) -> list[Notification]:
        return self.db.query(Notification).filter(
            Notification.receiver_id == receiver_id,
            Notification.receiver_type == receiver_type,
        ).order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def unread_count(self, receiver_id: int, receiver_type: str) -> int:
        return self.db.query(func.count(Notification.id)).filter(
            Notification.receiver_id == receiver_id,
            Notification.receiver_type == receiver_type,
            Notification.is_read == False,  # noqa: E712
        ).scalar() or 0

    def mark_all_read(self, receiver_id: int, receiver_type: str) -> int:
        return self.db.query(Notification).filter(
            Notification.receiver_id == receiver_id,
            Notification.receiver_type == receiver_type,
            Notification.is_read == False,  # noqa: E712
        ).update({Notification.is_read: True}, synchronize_session="fetch")


class SqlStore:
    def __init__(self, db: Session):
        self.db = db
        self.users = SqlUserRepository(db)
        self.pharmacies = SqlPharmacyRepository(db)
        self.orders = SqlOrderRepository(db)
        self.bids = SqlBidRepository(db)
        self.notifications = SqlNotificationRepository(db)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


def get_store(db: Session = Depends(get_db)) -> SqlStore:
    """Dependency that wraps the request's DB session in a SqlStore."""
    return SqlStore(db)
