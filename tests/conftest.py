"""
Pytest configuration: point the app at a throwaway SQLite database and upload
directory before anything from medilink is imported.
"""
import os
import tempfile
from pathlib import Path

import pytest

TMP = Path(tempfile.mkdtemp(prefix="medilink-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{TMP / 'test_medilink.db'}"
os.environ["UPLOAD_DIR"] = str(TMP / "uploads")
os.environ["SECRET_KEY"] = "test-secret"

from medilink.core.principal import CustomerPrincipal, PharmacyPrincipal  # noqa: E402
from medilink.models.order import Order, OrderStatus  # noqa: E402
from medilink.models.pharmacy import Pharmacy  # noqa: E402
from medilink.models.user import User  # noqa: E402
from medilink.repositories.memory import MemoryStore  # noqa: E402


@pytest.fixture
def store():
    return MemoryStore()


def add_customer(store, name="Ayesha", email=None):
    user = store.users.add(User(
        full_name=name,
        email=email or f"{name.lower()}@example.com",
        hashed_password="x",
        status="active",
    ))
    return CustomerPrincipal(user.id)


def add_pharmacy(store, name, latitude=None, longitude=None, status="active"):
    pharmacy = store.pharmacies.add(Pharmacy(
        pharmacy_name=name,
        email=f"{name.lower().replace(' ', '-')}@example.com",
        hashed_password="x",
        latitude=latitude,
        longitude=longitude,
        status=status,
    ))
    return PharmacyPrincipal(pharmacy.id)


def add_order(store, customer, latitude=24.86, longitude=67.01, radius_km=5.0, status=OrderStatus.PENDING):
    return store.orders.add(Order(
        user_id=customer.id,
        image_url="/uploads/rx.png",
        radius_km=radius_km,
        latitude=latitude,
        longitude=longitude,
        status=status,
    ))
