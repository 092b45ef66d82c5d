"""
Authenticated principals. A request acts either as a customer or as a pharmacy.
"""
from dataclasses import dataclass
from typing import Union

USER_ROLE = "user"
PHARMACY_ROLE = "pharmacy"


@dataclass(frozen=True)
class CustomerPrincipal:
    id: int
    role = USER_ROLE


@dataclass(frozen=True)
class PharmacyPrincipal:
    id: int
    role = PHARMACY_ROLE


Principal = Union[CustomerPrincipal, PharmacyPrincipal]


def principal_for(role: str, principal_id: int) -> Principal:
    if role == USER_ROLE:
        return CustomerPrincipal(principal_id)
    if role == PHARMACY_ROLE:
        return PharmacyPrincipal(principal_id)
    raise ValueError(f"Unknown role: {role}")
