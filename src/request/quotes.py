import random

from src.request.interface import ServiceType

BASE_PRICES: dict[ServiceType, int] = {
    ServiceType.FLAT_TYRE: 40,
    ServiceType.OUT_OF_FUEL: 30,
    ServiceType.CAR_BATTERY: 60,
    ServiceType.TOW_TRUCK: 100,
    ServiceType.EMERGENCY: 80,
    ServiceType.OTHER_CAR_PROBLEMS: 50,
    ServiceType.SUPPORT: 50,
}
DEFAULT_BASE_PRICE = 50

QUOTE_SPREAD = 10
MIN_QUOTE = 20

REVISION_DISCOUNT = (5, 15)
MIN_REVISED_QUOTE = 10


def generate_quote(service_type: ServiceType, rng: random.Random | None = None) -> int:
    """Base price for the service, perturbed by up to QUOTE_SPREAD either way."""
    rng = rng or random.Random()
    base = BASE_PRICES.get(service_type, DEFAULT_BASE_PRICE)
    return max(MIN_QUOTE, base + rng.randint(-QUOTE_SPREAD, QUOTE_SPREAD))


def generate_revised_quote(
    previous_amount: int, rng: random.Random | None = None
) -> int:
    """
    Lower a declined quote by a random discount.

    The result is always strictly below `previous_amount` and never below
    MIN_REVISED_QUOTE, which is why a quote already at the floor cannot be
    revised.
    """
    if previous_amount <= MIN_REVISED_QUOTE:
        raise ValueError(
            f"Cannot revise a quote of {previous_amount}: "
            f"already at or below {MIN_REVISED_QUOTE}"
        )
    rng = rng or random.Random()
    discount = rng.randint(*REVISION_DISCOUNT)
    return max(MIN_REVISED_QUOTE, previous_amount - discount)
