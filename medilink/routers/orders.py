from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from medilink.repositories.base import Store
from medilink.repositories.sql import get_store
from medilink.models.order import OrderStatus
from medilink.models.bid import BidStatus
from medilink.core.principal import CustomerPrincipal, Principal
from medilink.core.security import get_current_principal, require_customer
from medilink.services import orders as order_service
from medilink.services import bids as bid_service
from medilink.services.uploads import discard_prescription_image, save_prescription_image

router = APIRouter(prefix="/api/orders", tags=["orders"])

class OrderResponse(BaseModel):
    id: int
    user_id: int
    image_url: str
    description: Optional[str] = None
    radius_km: float
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: OrderStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class OrderBidResponse(BaseModel):
    id: int
    order_id: int
    pharmacy_id: int
    price: float
    message: Optional[str] = None
    status: BidStatus
    created_at: Optional[datetime] = None
    pharmacy_name: Optional[str] = None
    pharmacy_phone: Optional[str] = None
    pharmacy_address: Optional[str] = None
    pharmacy_rating: Optional[float] = None

class OrderActionResponse(BaseModel):
    message: str
    order: OrderResponse

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    prescription: Optional[UploadFile] = File(None),
    description: Optional[str] = Form(None),
    radius_km: Optional[float] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    customer: CustomerPrincipal = Depends(require_customer),
    store: Store = Depends(get_store)
):
    # reject bad form fields before anything is written to disk
    order_service.validate_order_fields(radius_km, latitude, longitude)
    image_url = await save_prescription_image(prescription)
    try:
        return order_service.create_order(
            store,
            customer,
            image_url=image_url,
            description=description,
            radius_km=radius_km,
            latitude=latitude,
            longitude=longitude,
        )
    except Exception:
        discard_prescription_image(image_url)
        raise

@router.get("", response_model=List[OrderResponse])
async def list_orders(
    customer: CustomerPrincipal = Depends(require_customer),
    store: Store = Depends(get_store)
):
    return order_service.list_orders(store, customer)

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    store: Store = Depends(get_store)
):
    return order_service.get_order(store, principal, order_id)

@router.get("/{order_id}/bids", response_model=List[OrderBidResponse])
async def get_order_bids(
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    store: Store = Depends(get_store)
):
    return bid_service.bids_for_order(store, principal, order_id)

@router.patch("/{order_id}/cancel", response_model=OrderActionResponse)
async def cancel_order(
    order_id: int,
    customer: CustomerPrincipal = Depends(require_customer),
    store: Store = Depends(get_store)
):
    order = order_service.cancel_order(store, customer, order_id)
    return {"message": "Order cancelled", "order": OrderResponse.model_validate(order)}
