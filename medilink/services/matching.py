"""
Candidate matching: which pharmacies see an order, and which orders a pharmacy sees.

Storage narrows the candidates (active, located, open); the distance decision is
always taken here with haversine_km.
"""
from medilink.core.geo import bounding_box, haversine_km
from medilink.models.order import Order
from medilink.models.pharmacy import Pharmacy
from medilink.repositories.base import Store


def pharmacies_near(store: Store, latitude: float, longitude: float, radius_km: float) -> list[tuple[Pharmacy, float]]:
    """Active, located pharmacies within radius_km of the point, nearest first."""
    if radius_km is None or radius_km < 0:
        return []
    candidates = store.pharmacies.list_active_located(bbox=bounding_box(latitude, longitude, radius_km))
    matches = []
    for pharmacy in candidates:
        distance = haversine_km(latitude, longitude, pharmacy.latitude, pharmacy.longitude)
        if distance <= radius_km:
            matches.append((pharmacy, distance))
    # sorted() is stable, equal distances keep storage order
    return sorted(matches, key=lambda match: match[1])


def orders_near_pharmacy(store: Store, pharmacy: Pharmacy) -> list[tuple[Order, float]]:
    """
    Open orders whose own radius reaches the pharmacy, newest first.

    The customer sets how far they are willing to travel, so each order is
    checked against its radius_km rather than a pharmacy-wide coverage.
    """
    if pharmacy is None or not pharmacy.has_location:
        return []
    matches = []
    # list_open_located already returns newest first
    for order in store.orders.list_open_located():
        distance = haversine_km(pharmacy.latitude, pharmacy.longitude, order.latitude, order.longitude)
        if distance <= order.radius_km:
            matches.append((order, distance))
    return matches
