from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
import logging
from medilink.repositories.base import Store
from medilink.repositories.sql import get_store
from medilink.models.user import User
from medilink.models.pharmacy import Pharmacy
from medilink.core.principal import CustomerPrincipal, PharmacyPrincipal, Principal
from medilink.core.security import (
    verify_password,
    get_password_hash,
    create_principal_token,
    get_current_principal,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])

class UserCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None

class PharmacyCreate(BaseModel):
    pharmacy_name: str = Field(..., min_length=1, max_length=150)
    owner_name: Optional[str] = None
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = None
    opening_hours: Optional[str] = None
    license_no: Optional[str] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class UserProfile(BaseModel):
    user_id: int = Field(validation_alias="id")
    full_name: str
    email: str
    phone: Optional[str] = None
    city: Optional[str] = None

    class Config:
        from_attributes = True
        populate_by_name = True

class PharmacyProfile(BaseModel):
    pharmacy_id: int = Field(validation_alias="id")
    pharmacy_name: str
    email: str
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    class Config:
        from_attributes = True
        populate_by_name = True

class UserAuthResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserProfile

class PharmacyAuthResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    pharmacy: PharmacyProfile

class MeResponse(BaseModel):
    role: str
    user: Optional[UserProfile] = None
    pharmacy: Optional[PharmacyProfile] = None


def _email_taken(store: Store, email: str) -> bool:
    return store.users.get_by_email(email) is not None or store.pharmacies.get_by_email(email) is not None


@router.post("/register/user", response_model=UserAuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, store: Store = Depends(get_store)):
    # Check if email already exists
    if _email_taken(store, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = store.users.add(User(
        full_name=user_data.full_name,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        phone=user_data.phone,
        address=user_data.address,
        city=user_data.city,
        status="active",
    ))
    store.commit()
    logger.info("user_registered", extra={"user_id": user.id})

    token = create_principal_token(CustomerPrincipal(user.id), user.email)
    return {"message": "Registration successful", "token": token, "user": UserProfile.model_validate(user)}

@router.post("/register/pharmacy", response_model=PharmacyAuthResponse, status_code=status.HTTP_201_CREATED)
async def register_pharmacy(pharmacy_data: PharmacyCreate, store: Store = Depends(get_store)):
    if _email_taken(store, pharmacy_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )
    if (pharmacy_data.latitude is None) != (pharmacy_data.longitude is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Latitude and longitude must be given together"
        )

    pharmacy = store.pharmacies.add(Pharmacy(
        pharmacy_name=pharmacy_data.pharmacy_name,
        owner_name=pharmacy_data.owner_name,
        email=pharmacy_data.email,
        hashed_password=get_password_hash(pharmacy_data.password),
        phone=pharmacy_data.phone,
        city=pharmacy_data.city,
        latitude=pharmacy_data.latitude,
        longitude=pharmacy_data.longitude,
        address=pharmacy_data.address,
        opening_hours=pharmacy_data.opening_hours,
        license_no=pharmacy_data.license_no,
        status="active",
    ))
    store.commit()
    logger.info("pharmacy_registered", extra={"pharmacy_id": pharmacy.id})

    token = create_principal_token(PharmacyPrincipal(pharmacy.id), pharmacy.email)
    return {"message": "Registration successful", "token": token, "pharmacy": PharmacyProfile.model_validate(pharmacy)}

def _check_login(account, password: str):
    if not account or not verify_password(password, account.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not account.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

@router.post("/login/user", response_model=UserAuthResponse)
async def login_user(login_data: LoginRequest, store: Store = Depends(get_store)):
    user = store.users.get_by_email(login_data.email)
    _check_login(user, login_data.password)

    token = create_principal_token(CustomerPrincipal(user.id), user.email)
    return {"message": "Login successful", "token": token, "user": UserProfile.model_validate(user)}

@router.post("/login/pharmacy", response_model=PharmacyAuthResponse)
async def login_pharmacy(login_data: LoginRequest, store: Store = Depends(get_store)):
    pharmacy = store.pharmacies.get_by_email(login_data.email)
    _check_login(pharmacy, login_data.password)

    token = create_principal_token(PharmacyPrincipal(pharmacy.id), pharmacy.email)
    return {"message": "Login successful", "token": token, "pharmacy": PharmacyProfile.model_validate(pharmacy)}

@router.get("/me", response_model=MeResponse, response_model_exclude_none=True)
async def me(
    principal: Principal = Depends(get_current_principal),
    store: Store = Depends(get_store)
):
    if isinstance(principal, CustomerPrincipal):
        return {"role": principal.role, "user": UserProfile.model_validate(store.users.get(principal.id))}
    return {"role": principal.role, "pharmacy": PharmacyProfile.model_validate(store.pharmacies.get(principal.id))}
