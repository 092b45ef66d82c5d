from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from medilink.repositories.base import Store
from medilink.repositories.sql import get_store
from medilink.models.bid import BidStatus
from medilink.core.principal import CustomerPrincipal, PharmacyPrincipal
from medilink.core.security import require_customer, require_pharmacy
from medilink.services import bids as bid_service

router = APIRouter(prefix="/api/bids", tags=["bids"])

class BidCreate(BaseModel):
    order_id: int
    # checked by the ledger so a non-positive price is a 400 like other rule violations
    price: float
    message: Optional[str] = Field(None, max_length=255)

class BidResponse(BaseModel):
    id: int
    order_id: int
    pharmacy_id: int
    price: float
    message: Optional[str] = None
    status: BidStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BidActionResponse(BaseModel):
    message: str
    bid: BidResponse

@router.post("", response_model=BidActionResponse, status_code=status.HTTP_201_CREATED)
async def create_bid(
    bid_data: BidCreate,
    pharmacy: PharmacyPrincipal = Depends(require_pharmacy),
    store: Store = Depends(get_store)
):
    bid = bid_service.submit_bid(store, pharmacy, bid_data.order_id, bid_data.price, bid_data.message)
    return {"message": "Bid placed successfully", "bid": BidResponse.model_validate(bid)}

@router.patch("/{bid_id}/accept", response_model=BidActionResponse)
async def accept_bid(
    bid_id: int,
    customer: CustomerPrincipal = Depends(require_customer),
    store: Store = Depends(get_store)
):
    bid = bid_service.accept_bid(store, customer, bid_id)
    return {"message": "Bid accepted", "bid": BidResponse.model_validate(bid)}

@router.patch("/{bid_id}/reject", response_model=BidActionResponse)
async def reject_bid(
    bid_id: int,
    customer: CustomerPrincipal = Depends(require_customer),
    store: Store = Depends(get_store)
):
    bid = bid_service.reject_bid(store, customer, bid_id)
    return {"message": "Bid rejected", "bid": BidResponse.model_validate(bid)}
