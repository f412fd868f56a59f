"""
Static purchase catalog: subscription plans and the manual-transfer
payment methods they can be paid through.

Loaded once at import and never mutated; attempts hold plan ids and
resolve them here.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from app.settings import settings


class PaymentMethod(str, Enum):
    JAZZCASH = "JazzCash"
    EASYPAISA = "Easypaisa"


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    price: int  # whole PKR
    duration: str
    features: Tuple[str, ...] = field(default_factory=tuple)
    recommended: bool = False


@dataclass(frozen=True)
class PaymentMethodInfo:
    id: PaymentMethod
    displayName: str
    accountName: str
    accountNumber: str


PLANS: Tuple[Plan, ...] = (
    Plan(
        id="weekly",
        name="Weekly Pass",
        price=120,
        duration="1 Week",
        features=("Unlimited Downloads", "No Ads", "Access 3D Walls"),
    ),
    Plan(
        id="monthly",
        name="Monthly Pro",
        price=350,
        duration="1 Month",
        features=("All Premium Content", "Priority Support", "High Res 4K"),
        recommended=True,
    ),
    Plan(
        id="yearly",
        name="Yearly Elite",
        price=2500,
        duration="1 Year",
        features=("Best Value", "Exclusive Drops", "Request Wallpapers"),
    ),
    Plan(
        id="lifetime",
        name="Lifetime",
        price=5500,
        duration="Forever",
        features=("One-time Payment", "VIP Badge", "Founder Status"),
    ),
)

PAYMENT_METHODS: Dict[PaymentMethod, PaymentMethodInfo] = {
    PaymentMethod.JAZZCASH: PaymentMethodInfo(
        id=PaymentMethod.JAZZCASH,
        displayName="JazzCash",
        accountName=settings.JAZZCASH_ACCOUNT_NAME,
        accountNumber=settings.JAZZCASH_ACCOUNT_NUMBER,
    ),
    PaymentMethod.EASYPAISA: PaymentMethodInfo(
        id=PaymentMethod.EASYPAISA,
        displayName="Easypaisa",
        accountName=settings.EASYPAISA_ACCOUNT_NAME,
        accountNumber=settings.EASYPAISA_ACCOUNT_NUMBER,
    ),
}

_PLANS_BY_ID: Dict[str, Plan] = {p.id: p for p in PLANS}


def get_plan(plan_id: str) -> Optional[Plan]:
    return _PLANS_BY_ID.get(plan_id)


def parse_method(value) -> Optional[PaymentMethod]:
    """Map a raw value ("Easypaisa", "easypaisa", PaymentMethod.EASYPAISA) to the enum."""
    if isinstance(value, PaymentMethod):
        return value
    if not isinstance(value, str):
        return None
    v = value.strip().lower()
    for m in PaymentMethod:
        if m.value.lower() == v or m.name.lower() == v:
            return m
    return None


def get_method(value) -> Optional[PaymentMethodInfo]:
    m = parse_method(value)
    return PAYMENT_METHODS.get(m) if m is not None else None
