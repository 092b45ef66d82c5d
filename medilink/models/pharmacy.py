from sqlalchemy import Boolean, Column, Integer, String, DateTime, Text, Float
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from medilink.database import Base

class Pharmacy(Base):
    __tablename__ = "pharmacies"

    id = Column(Integer, primary_key=True, index=True)
    pharmacy_name = Column(String(150), nullable=False)
    owner_name = Column(String(100), nullable=True)
    email = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    city = Column(String(100), nullable=True, index=True)
    address = Column(Text, nullable=True)
    opening_hours = Column(String(255), nullable=True)
    license_no = Column(String(50), nullable=True)
    status = Column(String(10), default="active", nullable=False)  # active, inactive
    verified = Column(Boolean, default=False)
    rating_avg = Column(Float, default=0.0)  # not used in matching
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Location, nullable until the pharmacy completes its location setup
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Relationships
    bids = relationship("Bid", back_populates="pharmacy")

    @property
    def is_active(self):
        return self.status == "active"

    @property
    def has_location(self):
        return self.latitude is not None and self.longitude is not None
