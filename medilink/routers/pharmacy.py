from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import logging
from medilink.repositories.base import Store
from medilink.repositories.sql import get_store
from medilink.models.order import OrderStatus
from medilink.models.bid import BidStatus
from medilink.core.principal import PharmacyPrincipal
from medilink.core.security import require_pharmacy
from medilink.services import bids as bid_service
from medilink.services.matching import orders_near_pharmacy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pharmacy", tags=["pharmacy"])

class NearbyOrderResponse(BaseModel):
    id: int
    user_id: int
    image_url: str
    description: Optional[str] = None
    radius_km: float
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: OrderStatus
    created_at: Optional[datetime] = None
    distance: float

class PharmacyBidResponse(BaseModel):
    id: int
    order_id: int
    pharmacy_id: int
    price: float
    message: Optional[str] = None
    status: BidStatus
    created_at: Optional[datetime] = None
    order_image: Optional[str] = None
    order_description: Optional[str] = None
    order_status: Optional[OrderStatus] = None

class LocationUpdate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    city: Optional[str] = None

class LocationResponse(BaseModel):
    pharmacy_id: int
    latitude: float
    longitude: float
    address: Optional[str] = None
    city: Optional[str] = None

@router.get("/orders", response_model=List[NearbyOrderResponse])
async def get_nearby_orders(
    pharmacy: PharmacyPrincipal = Depends(require_pharmacy),
    store: Store = Depends(get_store)
):
    seller = store.pharmacies.get(pharmacy.id)
    return [
        {
            "id": order.id,
            "user_id": order.user_id,
            "image_url": order.image_url,
            "description": order.description,
            "radius_km": order.radius_km,
            "latitude": order.latitude,
            "longitude": order.longitude,
            "status": order.status,
            "created_at": order.created_at,
            "distance": round(distance, 3),
        }
        for order, distance in orders_near_pharmacy(store, seller)
    ]

@router.get("/bids", response_model=List[PharmacyBidResponse])
async def get_my_bids(
    pharmacy: PharmacyPrincipal = Depends(require_pharmacy),
    store: Store = Depends(get_store)
):
    return bid_service.bids_for_pharmacy(store, pharmacy)

@router.patch("/location", response_model=LocationResponse)
async def update_location(
    location: LocationUpdate,
    pharmacy: PharmacyPrincipal = Depends(require_pharmacy),
    store: Store = Depends(get_store)
):
    seller = store.pharmacies.get(pharmacy.id)
    if not seller:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Pharmacy not found"
        )

    seller.latitude = location.latitude
    seller.longitude = location.longitude
    if location.address is not None:
        seller.address = location.address
    if location.city is not None:
        seller.city = location.city
    store.commit()
    logger.info("pharmacy_located", extra={"pharmacy_id": pharmacy.id})

    return {
        "pharmacy_id": seller.id,
        "latitude": seller.latitude,
        "longitude": seller.longitude,
        "address": seller.address,
        "city": seller.city,
    }
