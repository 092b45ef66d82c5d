from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Float, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from medilink.database import Base

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    BIDDING = "bidding"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.BIDDING)
TERMINAL_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    radius_km = Column(Float, nullable=False, default=5.0)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="orders")
    bids = relationship("Bid", back_populates="order")

    @property
    def has_location(self):
        return self.latitude is not None and self.longitude is not None
