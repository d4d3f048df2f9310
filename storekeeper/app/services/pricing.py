"""Line-item pricing.

Unit prices of weight-based products are stored per kilogram-equivalent and
requested quantities are always kilograms, so G and PER_100G only scale the
quantity. Nothing here rounds; see ``round_money`` for report boundaries.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from storekeeper.app.models.inventory import PricingUnit
from storekeeper.app.services.exceptions import InvalidRequestError

MONEY_Q = Decimal("0.01")

# Decimal places the price, quantity and ledger amount columns hold
PRICE_PLACES = 4
QUANTITY_PLACES = 3
AMOUNT_PLACES = 7

_UNIT_FACTORS: dict[PricingUnit, Decimal] = {
    PricingUnit.PIECE: Decimal("1"),
    PricingUnit.KG: Decimal("1"),
    PricingUnit.G: Decimal("1000"),
    PricingUnit.PER_100G: Decimal("10"),
}


def calculate_subtotal(
    unit_price: Decimal,
    pricing_unit: PricingUnit,
    quantity: Decimal | int,
    is_weight_based: bool,
) -> Decimal:
    """Return ``unit_price`` applied to ``quantity`` under ``pricing_unit``."""
    quantity = Decimal(quantity)
    if not is_weight_based:
        return unit_price * quantity
    return unit_price * quantity * _UNIT_FACTORS[PricingUnit(pricing_unit)]


def requires_whole_quantity(pricing_unit: PricingUnit, is_weight_based: bool) -> bool:
    return not is_weight_based or PricingUnit(pricing_unit) == PricingUnit.PIECE


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY_Q, rounding=ROUND_HALF_UP)


def fits_scale(value: Decimal, places: int) -> bool:
    """True when ``value`` has no more than ``places`` significant decimals."""
    return Decimal(value).normalize().as_tuple().exponent >= -places


def validate_quantity(
    name: str,
    quantity: Decimal,
    pricing_unit: PricingUnit,
    is_weight_based: bool,
) -> None:
    """Reject quantities the unit or the stock columns cannot represent."""
    if requires_whole_quantity(pricing_unit, is_weight_based):
        if quantity != quantity.to_integral_value():
            raise InvalidRequestError(f"Quantity for '{name}' must be a whole number")
    elif not fits_scale(quantity, QUANTITY_PLACES):
        raise InvalidRequestError(
            f"Quantity for '{name}' cannot have more than {QUANTITY_PLACES} decimal places"
        )
