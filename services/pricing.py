from typing import Iterable, Mapping
from settings.config import settings

def compute_subtotal(items: Iterable[Mapping]) -> float:
    return round(sum(float(item["price"]) * int(item["quantity"]) for item in items), 2)

def compute_delivery_fee(subtotal: float) -> float:
    if subtotal > settings.FREE_DELIVERY_THRESHOLD:
        return 0.0
    return float(settings.DELIVERY_FEE)

def compute_service_fee(subtotal: float) -> float:
    return round(max(float(settings.MIN_SERVICE_FEE), subtotal * settings.SERVICE_FEE_RATE), 2)

def price_order(items: Iterable[Mapping]) -> dict:
    """
    Pricing for a set of snapshot line items ({price, quantity}).
    Totals are computed once at checkout and stored on the order.
    """
    subtotal = compute_subtotal(items)
    delivery_fee = compute_delivery_fee(subtotal)
    service_fee = compute_service_fee(subtotal)
    return {
        "subtotal": subtotal,
        "delivery_fee": delivery_fee,
        "service_fee": service_fee,
        "total": round(subtotal + delivery_fee + service_fee, 2),
    }
