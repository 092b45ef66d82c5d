from sqlalchemy import Boolean, Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from medilink.database import Base

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    # Sender and receiver may be either a user or a pharmacy, so no foreign keys
    sender_id = Column(Integer, nullable=False)
    sender_type = Column(String(20), nullable=False)  # user, pharmacy
    receiver_id = Column(Integer, nullable=False, index=True)
    receiver_type = Column(String(20), nullable=False)  # user, pharmacy
    type = Column(String(20), default="order", nullable=False)  # order, bid
    message = Column(Text)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
